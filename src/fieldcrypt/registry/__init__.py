"""
Sensitive column registry for fieldcrypt.

This module lists which tables and columns hold data that must be
encrypted at rest.
"""

from .sensitive_tables import DEFAULT_SENSITIVE_TABLES, SensitiveTable, SensitiveTableRegistry

__all__ = ["SensitiveTable", "SensitiveTableRegistry", "DEFAULT_SENSITIVE_TABLES"]
