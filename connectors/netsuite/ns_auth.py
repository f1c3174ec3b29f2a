"""NetSuite authentication provider.

Token acquisition (OAuth 2.0 client credentials, token-based auth) happens
outside this project; the client only needs an object that can produce an
Authorization header. NetSuiteTokenAuth wraps a pre-issued bearer token.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class NetSuiteTokenAuth:
    """Static bearer token authentication."""
    access_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "NetSuiteTokenAuth":
        return cls(access_token=os.getenv("NETSUITE_ACCESS_TOKEN"))

    async def ensure_valid_token(self) -> bool:
        """Return True if a token is available."""
        return bool(self.access_token)

    def get_authorization_header(self) -> Optional[str]:
        if not self.access_token:
            return None
        return f"Bearer {self.access_token}"
