"""
nestAD Data Schemas
===================

Typed dataclasses describing directory principals and the membership
relationships discovered while walking privileged groups.

Design Decisions:
-----------------
1. GroupRef and Principal are frozen: identity is fixed at discovery time
2. MembershipRecord is the unit of tabular output (one row per discovered
   edge per root)
3. Enums serialize to the exact strings used in the CSV and JSON reports
4. MembershipReport aggregates everything the exporters and CLI need

Schema Overview:
- GroupRef, Principal: directory identities
- MembershipRecord: one classified membership edge
- GraphNode, GraphEdge: rendering model
- Diagnostic: a non-fatal problem met during a scan
- TraversalResult: output of one root's traversal
- MembershipReport: merged output of a whole run
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .graph_builder import MembershipGraph


# Security flag value reported for group members
NOT_APPLICABLE = "N/A"

# Separator between group names in a nesting path
PATH_DELIMITER = " -> "


class ObjectClass(Enum):
    """Directory object classes the scanner distinguishes."""
    GROUP = "group"
    USER = "user"
    COMPUTER = "computer"
    OTHER = "other"

    @classmethod
    def from_string(cls, s: Optional[str]) -> "ObjectClass":
        """Convert a literal directory class to an ObjectClass."""
        normalized = (s or "").strip().lower()
        for object_class in cls:
            if object_class.value == normalized:
                return object_class
        return cls.OTHER


class MembershipType(Enum):
    """How a member relates to the root group of a scan."""
    DIRECT = "Direct"
    NESTED = "Nested"


class NodeCategory(Enum):
    """Rendering category of a graph node."""
    ROOT = "root"
    INTERMEDIATE_GROUP = "intermediate-group"
    PRINCIPAL = "principal"


class ScanMode(Enum):
    """Strategies for choosing the root groups of a scan."""
    PROTECTED = "protected"
    FILE = "file"
    OU = "ou"
    ALL = "all"

    @classmethod
    def from_string(cls, s: str) -> "ScanMode":
        normalized = s.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(f"Unknown scan mode: {s}")


class DiagnosticLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class GroupRef:
    """Resolved identity of a group.

    Attributes:
        distinguished_name: Stable directory identifier
        name: Account name (sAMAccountName) used for display
    """
    distinguished_name: str
    name: str

    @property
    def visit_key(self) -> str:
        """Key used by the cycle guard. DNs compare case-insensitively."""
        return self.distinguished_name.lower()


@dataclass(frozen=True)
class Principal:
    """A directory object found in a group's member list.

    Attributes:
        name: Display (account) name
        identifier: Distinguished name
        object_class: Literal directory class, e.g. "user" or
            "foreignSecurityPrincipal"
    """
    name: str
    identifier: str
    object_class: str = ObjectClass.OTHER.value

    @property
    def kind(self) -> ObjectClass:
        return ObjectClass.from_string(self.object_class)

    @property
    def is_group(self) -> bool:
        return self.kind == ObjectClass.GROUP

    @property
    def has_security_flag(self) -> bool:
        """Only users and computers carry the security flag attribute."""
        return self.kind in (ObjectClass.USER, ObjectClass.COMPUTER)


@dataclass(frozen=True)
class MembershipRecord:
    """One discovered membership edge, relative to a scan root.

    Attributes:
        root_name: Group the scan started from
        member_name: Name of the member principal
        object_class: Literal class of the member
        membership_type: Direct (member of the root) or Nested
        source_group: Group whose member list contained this member;
            empty when Direct
        path: Group names from the root to source_group; empty when Direct
        security_flag: Attribute value, "" when absent, or NOT_APPLICABLE
            for group members
        identifier: Distinguished name of the member
    """
    root_name: str
    member_name: str
    object_class: str
    membership_type: MembershipType
    source_group: str = ""
    path: tuple = ()
    security_flag: str = ""
    identifier: str = ""

    def path_text(self, delimiter: str = PATH_DELIMITER) -> str:
        return delimiter.join(self.path)

    @property
    def full_path(self) -> str:
        return self.path_text()

    @property
    def sort_key(self) -> tuple:
        return (
            self.root_name,
            self.member_name,
            self.object_class,
            self.membership_type.value,
            self.source_group,
            self.security_flag,
            self.identifier,
        )

    def to_row(self, delimiter: str = PATH_DELIMITER) -> list[str]:
        """Row values in CSV column order."""
        return [
            self.root_name,
            self.member_name,
            self.object_class,
            self.membership_type.value,
            self.source_group,
            self.path_text(delimiter),
            self.security_flag,
            self.identifier,
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "root_group": self.root_name,
            "member": self.member_name,
            "object_class": self.object_class,
            "membership_type": self.membership_type.value,
            "source_group": self.source_group,
            "path": list(self.path),
            "security_flag": self.security_flag,
            "identifier": self.identifier,
        }


@dataclass(frozen=True)
class GraphNode:
    name: str
    category: NodeCategory


@dataclass(frozen=True)
class GraphEdge:
    """Directed edge from a group to one of its members.

    containment is True when the member is itself a group.
    """
    source: str
    target: str
    containment: bool = False


@dataclass
class Diagnostic:
    """A non-fatal problem or notice raised during a scan."""
    level: DiagnosticLevel
    message: str
    group: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "message": self.message,
            "group": self.group,
        }


@dataclass
class TraversalResult:
    """Records, graph and diagnostics produced for a single root."""
    root_name: str
    records: list = field(default_factory=list)  # List of MembershipRecord
    graph: Optional["MembershipGraph"] = None
    diagnostics: list = field(default_factory=list)  # List of Diagnostic

    def __post_init__(self):
        if self.graph is None:
            from .graph_builder import MembershipGraph
            self.graph = MembershipGraph()


@dataclass
class MembershipReport:
    """Complete output of a scan run.

    Attributes:
        roots: Root group names in selection order
        records: Membership records in report order
        graph: Merged MembershipGraph
        diagnostics: Every Diagnostic raised during the run
        csv_path: Path of the written CSV report
        dot_path: Path of the written graph description
        image_path: Path of the rendered image, if any
        json_path: Path of the JSON summary
        metadata: Timestamp, scan mode and other run details
    """
    roots: list = field(default_factory=list)
    records: list = field(default_factory=list)
    graph: Optional["MembershipGraph"] = None
    diagnostics: list = field(default_factory=list)
    csv_path: Optional[str] = None
    dot_path: Optional[str] = None
    image_path: Optional[str] = None
    json_path: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.graph is None:
            from .graph_builder import MembershipGraph
            self.graph = MembershipGraph()

    @property
    def direct_count(self) -> int:
        return sum(1 for r in self.records if r.membership_type == MembershipType.DIRECT)

    @property
    def nested_count(self) -> int:
        return sum(1 for r in self.records if r.membership_type == MembershipType.NESTED)

    @property
    def warnings(self) -> list:
        return [d for d in self.diagnostics if d.level != DiagnosticLevel.INFO]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "roots": self.roots,
            "total_records": len(self.records),
            "direct_records": self.direct_count,
            "nested_records": self.nested_count,
            "records": [r.to_dict() for r in self.records],
            "graph": self.graph.to_dict(),
            "containment_cycles": self.graph.containment_cycles(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "csv_path": self.csv_path,
            "dot_path": self.dot_path,
            "image_path": self.image_path,
            "json_path": self.json_path,
            "metadata": self.metadata,
        }
