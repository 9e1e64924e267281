"""
nestAD Ingestion Module
=======================

Directory accessors used by the membership scanner.

Supported Sources:
- LDAP live queries (using ldap3)
- JSON directory snapshots (offline analysis)

Design Philosophy:
- All accessors implement the DirectoryAccessor contract
- Accessors are read-only and raise nestAD errors, never library errors
"""

from .base import DirectoryAccessor
from .ldap_loader import LDAPDirectory
from .snapshot_loader import SnapshotDirectory
