"""Core module - system-neutral configuration, errors, mapping and logging.

This module is intentionally independent of any specific order management
system. NetSuite-specific logic belongs in /connectors/.
"""

__version__ = "1.0.0"
