"""Error taxonomy for purchase-order reconciliation.

Exceptions are grouped by how the batch driver reacts to them:

- ConfigError: fatal to the whole run, raised before any order is touched
- NotFoundError: the order (or a referenced record) does not exist; skip the order
- RemoteError: the order system rejected a request; record an error for the order
- TransientError: network/timeout/throttling; retried by the client, then
  surfaced as a RemoteError

ResolutionMiss is not an exception. It tags why an expense line could not be
converted and stays an expense.
"""

from enum import Enum


class ReconcileError(Exception):
    """Base exception for reconciliation errors."""
    pass


class ConfigError(ReconcileError):
    """Mapping source or configuration is missing or malformed."""
    pass


class NotFoundError(ReconcileError):
    """Order code or record id could not be resolved."""
    pass


class RemoteError(ReconcileError):
    """Order management system rejected a request."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransientError(RemoteError):
    """Network failure, timeout, or throttling (429/5xx)."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = "", retry_after: float = 0.0):
        super().__init__(message, status_code, response_body)
        self.retry_after = retry_after


class ResolutionMiss(str, Enum):
    """Why an expense line was kept as an expense."""
    NO_ACCOUNT_REF = "no_account_ref"          # Line carries no account reference
    ACCOUNT_NOT_FOUND = "account_not_found"    # Account not in reference cache
    NOT_MAPPED = "not_mapped"                  # Account number absent from mapping
    ITEM_EXCLUDED = "item_excluded"            # Only the excluded catalog item matched
    ITEM_NOT_FOUND = "item_not_found"          # No catalog item matched the mapped name
