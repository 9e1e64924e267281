"""
Directory Accessor Contract
===========================

The lookups the membership traversal and root selection depend on.
Implementations: LDAPDirectory (live, ldap3) and SnapshotDirectory
(offline JSON capture).

Every call may fail independently. Implementations raise:
- GroupNotFoundError when a group name or DN does not exist
- ScopeNotFoundError when a search base does not exist
- DirectoryQueryError for anything else
"""

from abc import ABC, abstractmethod
from typing import Optional

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

from ..model.schemas import GroupRef, Principal


def rdn_value(dn: str) -> str:
    """Return the value of the first RDN of a DN.

    "CN=Domain Admins,CN=Users,DC=corp,DC=local" -> "Domain Admins"
    """
    try:
        components = parse_dn(dn)
    except LDAPInvalidDnError:
        return dn
    if not components:
        return dn
    return components[0][1].replace("\\,", ",")


def looks_like_dn(identity: str) -> bool:
    try:
        return bool(parse_dn(identity))
    except LDAPInvalidDnError:
        return False


class DirectoryAccessor(ABC):
    """Abstract read-only view of a directory service."""

    @abstractmethod
    def resolve_group(self, identity: str) -> GroupRef:
        """Resolve a group by account name or distinguished name."""

    @abstractmethod
    def list_members(self, group: GroupRef) -> list[Principal]:
        """List the direct members of a group, in no particular order."""

    @abstractmethod
    def get_attribute(self, identifier: str, name: str) -> Optional[str]:
        """Fetch the first value of an attribute, or None when absent."""

    @abstractmethod
    def list_groups(self, scope: Optional[str] = None) -> list[GroupRef]:
        """List groups under a search base, or all groups when scope is None."""

    @abstractmethod
    def get_heuristics(self) -> Optional[str]:
        """Return the directory-wide dSHeuristics value, if set."""

    def close(self) -> None:
        """Release any underlying resources."""
