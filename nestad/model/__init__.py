"""
nestAD Model Module
===================

Core data models and the graph representation of membership structure.

Key Components:
- schemas.py: Typed dataclasses for principals, records and reports
- graph_builder.py: NetworkX-based membership graph

Design Philosophy:
- Identities (GroupRef, Principal) are immutable once discovered
- The graph stores one node per display name and every traversed edge
"""

from .schemas import (
    NOT_APPLICABLE,
    PATH_DELIMITER,
    ObjectClass,
    MembershipType,
    NodeCategory,
    ScanMode,
    DiagnosticLevel,
    GroupRef,
    Principal,
    MembershipRecord,
    GraphNode,
    GraphEdge,
    Diagnostic,
    TraversalResult,
    MembershipReport,
)
from .graph_builder import MembershipGraph
