"""Shared fixtures: small in-memory directories built on SnapshotDirectory."""

from typing import Optional

import pytest

from nestad.config import NestadConfig, OutputConfig, ScanConfig
from nestad.errors import DirectoryQueryError, GroupNotFoundError
from nestad.ingestion.snapshot_loader import SnapshotDirectory

BASE_DN = "DC=corp,DC=local"
USERS = f"CN=Users,{BASE_DN}"


def object_dn(name: str, locations: Optional[dict] = None) -> str:
    container = (locations or {}).get(name, USERS)
    return f"CN={name},{container}"


def build_snapshot(
    groups: dict,
    users=(),
    computers=(),
    others: Optional[dict] = None,
    attributes: Optional[dict] = None,
    heuristics: Optional[str] = None,
    containers=(),
    locations: Optional[dict] = None,
) -> dict:
    """Snapshot dict where group members are given by name."""
    attributes = attributes or {}
    objects = []
    for name, members in groups.items():
        objects.append({
            "name": name,
            "dn": object_dn(name, locations),
            "object_class": "group",
            "members": [object_dn(m, locations) for m in members],
        })
    for name in users:
        objects.append({
            "name": name,
            "dn": object_dn(name, locations),
            "object_class": "user",
            "attributes": attributes.get(name, {}),
        })
    for name in computers:
        objects.append({
            "name": name,
            "dn": object_dn(name, locations),
            "object_class": "computer",
            "attributes": attributes.get(name, {}),
        })
    for name, object_class in (others or {}).items():
        objects.append({
            "name": name,
            "dn": object_dn(name, locations),
            "object_class": object_class,
            "attributes": attributes.get(name, {}),
        })
    return {"heuristics": heuristics, "containers": list(containers), "objects": objects}


class RecordingDirectory(SnapshotDirectory):
    """Snapshot directory that counts calls and injects failures by name."""

    def __init__(self, data, fail_members=(), fail_attributes=(), fail_resolve=(), fail_heuristics=False):
        super().__init__(data)
        self.fail_members = set(fail_members)
        self.fail_attributes = set(fail_attributes)
        self.fail_resolve = set(fail_resolve)
        self.fail_heuristics = fail_heuristics
        self.member_calls: list[str] = []
        self.attribute_calls: list[str] = []
        self.resolve_calls: list[str] = []

    def list_members(self, group):
        self.member_calls.append(group.name)
        if group.name in self.fail_members:
            raise DirectoryQueryError("insufficient access rights")
        return super().list_members(group)

    def get_attribute(self, identifier, name):
        self.attribute_calls.append(identifier)
        if any(identifier.startswith(f"CN={n},") for n in self.fail_attributes):
            raise DirectoryQueryError("timeout")
        return super().get_attribute(identifier, name)

    def resolve_group(self, identity):
        self.resolve_calls.append(identity)
        if any(identity == n or identity.startswith(f"CN={n},") for n in self.fail_resolve):
            raise GroupNotFoundError(identity)
        return super().resolve_group(identity)

    def get_heuristics(self):
        if self.fail_heuristics:
            raise DirectoryQueryError("configuration partition not readable")
        return super().get_heuristics()


@pytest.fixture
def make_directory():
    """Factory: make_directory(groups={...}, users=[...], fail_members=[...])."""

    def _make(fail_members=(), fail_attributes=(), fail_resolve=(), fail_heuristics=False, **kwargs):
        return RecordingDirectory(
            build_snapshot(**kwargs),
            fail_members=fail_members,
            fail_attributes=fail_attributes,
            fail_resolve=fail_resolve,
            fail_heuristics=fail_heuristics,
        )

    return _make


@pytest.fixture
def corp_snapshot() -> dict:
    """A small domain with nesting, a cycle and an organizational unit."""
    admins_ou = f"OU=Admins,{BASE_DN}"
    return build_snapshot(
        groups={
            "Domain Admins": ["alice", "Tier0 Operators"],
            "Enterprise Admins": ["Domain Admins", "carol"],
            "Tier0 Operators": ["bob", "SRV01", "Helpdesk"],
            "Helpdesk": ["dave", "Tier0 Operators"],
            "Backup Operators": [],
        },
        users=["alice", "bob", "carol", "dave"],
        computers=["SRV01"],
        attributes={"alice": {"adminCount": "1"}, "SRV01": {"adminCount": 1}},
        containers=[admins_ou, f"OU=Empty,{BASE_DN}"],
        locations={"Tier0 Operators": admins_ou, "Helpdesk": admins_ou},
    )


@pytest.fixture
def quiet_config(tmp_path) -> NestadConfig:
    return NestadConfig(
        scan=ScanConfig(),
        output=OutputConfig(output_dir=str(tmp_path / "out"), timestamped_runs=False, render_image=False),
        verbose=False,
    )
