"""
Directory Snapshot Loader
=========================

Offline directory accessor backed by a JSON capture of directory objects.

Snapshot Format:
    {
        "heuristics": "00000000010000f",
        "containers": ["OU=Admins,DC=corp,DC=local"],
        "objects": [
            {
                "name": "Domain Admins",
                "dn": "CN=Domain Admins,CN=Users,DC=corp,DC=local",
                "object_class": "group",
                "members": ["CN=alice,CN=Users,DC=corp,DC=local"]
            },
            {
                "name": "alice",
                "dn": "CN=alice,CN=Users,DC=corp,DC=local",
                "object_class": "user",
                "attributes": {"adminCount": "1"}
            }
        ]
    }

Design Decisions:
-----------------
1. Name and DN lookups are case-insensitive, as in Active Directory
2. Member DNs without a matching object are reported as class "other",
   named after the DN's first RDN
3. Objects keep file order so listings are deterministic
"""

import json
from pathlib import Path
from typing import Optional

from ..errors import (
    ConfigurationError,
    DirectoryQueryError,
    GroupNotFoundError,
    ScopeNotFoundError,
)
from ..model.schemas import GroupRef, ObjectClass, Principal
from .base import DirectoryAccessor, looks_like_dn, rdn_value


class SnapshotDirectory(DirectoryAccessor):
    """Directory accessor over a JSON snapshot.

    Usage:
        directory = SnapshotDirectory.from_file("corp_snapshot.json")
        group = directory.resolve_group("Domain Admins")
        members = directory.list_members(group)
    """

    def __init__(self, data: dict, verbose: bool = False):
        """Initialize from parsed snapshot data.

        Args:
            data: Snapshot dictionary (see module docstring)
            verbose: Whether to print progress messages
        """
        self.verbose = verbose
        self.heuristics: Optional[str] = data.get("heuristics")
        self.containers = [str(c) for c in data.get("containers", [])]

        self._objects: list[dict] = []
        self._by_dn: dict[str, dict] = {}    # dn.lower() -> object
        self._by_name: dict[str, dict] = {}  # name.lower() -> object

        for raw in data.get("objects", []):
            self._add_object(raw)

        if self.verbose:
            print(f"[+] Loaded snapshot: {len(self._objects)} objects")

    def _add_object(self, raw: dict) -> None:
        dn = raw.get("dn")
        if not dn:
            raise ConfigurationError(f"Snapshot object without a dn: {raw!r}")

        obj = {
            "dn": str(dn),
            "name": str(raw.get("name") or rdn_value(dn)),
            "object_class": str(raw.get("object_class", ObjectClass.OTHER.value)),
            "members": [str(m) for m in raw.get("members", [])],
            "attributes": dict(raw.get("attributes", {})),
        }
        self._objects.append(obj)
        self._by_dn[obj["dn"].lower()] = obj
        self._by_name.setdefault(obj["name"].lower(), obj)

    @classmethod
    def from_file(cls, path: str, verbose: bool = False) -> "SnapshotDirectory":
        """Load a snapshot from a JSON file.

        Raises:
            ConfigurationError: The file is missing or not valid JSON
        """
        file_path = Path(path)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read snapshot {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Snapshot {file_path} must contain a JSON object")

        return cls(data, verbose=verbose)

    def _lookup(self, identity: str) -> Optional[dict]:
        key = identity.lower()
        if looks_like_dn(identity):
            return self._by_dn.get(key)
        return self._by_name.get(key)

    def resolve_group(self, identity: str) -> GroupRef:
        obj = self._lookup(identity)
        if obj is None or ObjectClass.from_string(obj["object_class"]) != ObjectClass.GROUP:
            raise GroupNotFoundError(identity)
        return GroupRef(distinguished_name=obj["dn"], name=obj["name"])

    def list_members(self, group: GroupRef) -> list[Principal]:
        obj = self._by_dn.get(group.visit_key)
        if obj is None:
            raise DirectoryQueryError(f"Group vanished from snapshot: {group.distinguished_name}")

        members = []
        for member_dn in obj["members"]:
            member = self._by_dn.get(member_dn.lower())
            if member is None:
                members.append(Principal(
                    name=rdn_value(member_dn),
                    identifier=member_dn,
                    object_class=ObjectClass.OTHER.value,
                ))
            else:
                members.append(Principal(
                    name=member["name"],
                    identifier=member["dn"],
                    object_class=member["object_class"],
                ))
        return members

    def get_attribute(self, identifier: str, name: str) -> Optional[str]:
        obj = self._by_dn.get(identifier.lower())
        if obj is None:
            return None

        # Attribute names are case-insensitive
        for key, value in obj["attributes"].items():
            if key.lower() == name.lower():
                if isinstance(value, list):
                    value = value[0] if value else None
                return None if value is None else str(value)
        return None

    def list_groups(self, scope: Optional[str] = None) -> list[GroupRef]:
        if scope is not None:
            scope_key = scope.lower()
            known = scope_key in self._by_dn or any(c.lower() == scope_key for c in self.containers)
            if not known:
                raise ScopeNotFoundError(scope)

        groups = []
        for obj in self._objects:
            if ObjectClass.from_string(obj["object_class"]) != ObjectClass.GROUP:
                continue
            if scope is not None and not obj["dn"].lower().endswith("," + scope.lower()):
                continue
            groups.append(GroupRef(distinguished_name=obj["dn"], name=obj["name"]))
        return groups

    def get_heuristics(self) -> Optional[str]:
        return self.heuristics
