"""
Report Assembler
================

Merges per-root traversal results into a single report.

- Records are concatenated, never deduplicated: one row per root and
  discovered path occurrence
- Graph nodes are unioned by name; the first declared category wins
- Graph edges are concatenated
- Final record order: root, member, object class, membership type,
  source group, security flag, identifier. Comparison is Python's
  ordinal string order, so it is case-sensitive ("Zeta" < "alpha")
"""

from typing import Iterable, Optional

from ..model.graph_builder import MembershipGraph
from ..model.schemas import (
    Diagnostic,
    DiagnosticLevel,
    MembershipRecord,
    MembershipReport,
    TraversalResult,
)


def sort_records(records: Iterable[MembershipRecord]) -> list[MembershipRecord]:
    """Return records in report order."""
    return sorted(records, key=lambda r: r.sort_key)


class ReportAssembler:
    """Accumulates traversal results and builds the merged report.

    Usage:
        assembler = ReportAssembler()
        for result in results:
            assembler.add(result)
        report = assembler.build()
    """

    def __init__(self):
        self.roots: list[str] = []
        self.records: list[MembershipRecord] = []
        self.graph = MembershipGraph()
        self.diagnostics: list[Diagnostic] = []

    def add(self, result: TraversalResult) -> None:
        """Take over the output of one root's traversal."""
        self.roots.append(result.root_name)
        self.records.extend(result.records)
        self.graph.merge(result.graph)
        self.diagnostics.extend(result.diagnostics)

    def add_diagnostic(
        self,
        level: DiagnosticLevel,
        message: str,
        group: Optional[str] = None
    ) -> Diagnostic:
        diagnostic = Diagnostic(level, message, group)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def build(self, metadata: Optional[dict] = None) -> MembershipReport:
        """Build the merged report with records in final order."""
        return MembershipReport(
            roots=list(self.roots),
            records=sort_records(self.records),
            graph=self.graph,
            diagnostics=list(self.diagnostics),
            metadata=dict(metadata or {}),
        )
