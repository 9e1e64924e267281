"""Tests for merging traversal results into a report."""

from nestad.analysis.assembler import ReportAssembler, sort_records
from nestad.analysis.traversal import MembershipTraverser
from nestad.model.schemas import (
    DiagnosticLevel,
    MembershipRecord,
    MembershipType,
    NodeCategory,
    TraversalResult,
)


def record(root, member, object_class="user", membership_type=MembershipType.DIRECT, **kwargs):
    return MembershipRecord(
        root_name=root,
        member_name=member,
        object_class=object_class,
        membership_type=membership_type,
        **kwargs,
    )


class TestSortRecords:
    def test_ordinal_case_sensitive_order(self):
        records = [record("alpha", "x"), record("Zeta", "x"), record("Beta", "x")]

        assert [r.root_name for r in sort_records(records)] == ["Beta", "Zeta", "alpha"]

    def test_tie_breakers(self):
        records = [
            record("R", "m", "user", MembershipType.NESTED, source_group="B", path=("R", "B")),
            record("R", "m", "user", MembershipType.NESTED, source_group="A", path=("R", "A")),
            record("R", "m", "user", MembershipType.DIRECT),
            record("R", "m", "computer", MembershipType.DIRECT),
            record("R", "a", "user", MembershipType.DIRECT),
        ]

        ordered = sort_records(records)

        assert [(r.member_name, r.object_class, r.membership_type.value, r.source_group) for r in ordered] == [
            ("a", "user", "Direct", ""),
            ("m", "computer", "Direct", ""),
            ("m", "user", "Direct", ""),
            ("m", "user", "Nested", "A"),
            ("m", "user", "Nested", "B"),
        ]

    def test_sort_is_independent_of_input_order(self):
        records = [record("R", name) for name in ["d", "b", "a", "c"]]

        assert sort_records(records) == sort_records(list(reversed(records)))


class TestReportAssembler:
    def test_records_are_not_deduplicated_across_roots(self, make_directory):
        directory = make_directory(
            groups={"R1": ["Shared"], "R2": ["Shared"], "Shared": ["u"]},
            users=["u"],
        )
        traverser = MembershipTraverser(directory)
        assembler = ReportAssembler()

        for root in ["R2", "R1"]:
            assembler.add(traverser.traverse(directory.resolve_group(root), root))
        report = assembler.build()

        assert report.roots == ["R2", "R1"]
        assert [(r.root_name, r.member_name) for r in report.records] == [
            ("R1", "Shared"),
            ("R1", "u"),
            ("R2", "Shared"),
            ("R2", "u"),
        ]
        # Shared -> u reached from both roots
        assert report.graph.edge_count == 4

    def test_merged_graph_keeps_first_category(self, make_directory):
        directory = make_directory(groups={"Enterprise Admins": ["Domain Admins"], "Domain Admins": []})
        traverser = MembershipTraverser(directory)
        assembler = ReportAssembler()

        for root in ["Domain Admins", "Enterprise Admins"]:
            assembler.add(traverser.traverse(directory.resolve_group(root), root))
        report = assembler.build()

        assert report.graph.category_of("Domain Admins") == NodeCategory.ROOT
        assert report.graph.category_of("Enterprise Admins") == NodeCategory.ROOT

    def test_diagnostics_are_collected(self):
        result = TraversalResult(root_name="R")
        assembler = ReportAssembler()
        assembler.add(result)

        diagnostic = assembler.add_diagnostic(DiagnosticLevel.WARNING, "Root group not found: Ghost", "Ghost")
        report = assembler.build(metadata={"mode": "file"})

        assert report.diagnostics == [diagnostic]
        assert report.warnings == [diagnostic]
        assert report.metadata == {"mode": "file"}

    def test_counts(self):
        result = TraversalResult(root_name="R", records=[
            record("R", "G", "group"),
            record("R", "u", membership_type=MembershipType.NESTED, source_group="G", path=("R", "G")),
            record("R", "v", membership_type=MembershipType.NESTED, source_group="G", path=("R", "G")),
        ])
        assembler = ReportAssembler()
        assembler.add(result)

        report = assembler.build()

        assert report.direct_count == 1
        assert report.nested_count == 2

    def test_empty_build(self):
        report = ReportAssembler().build()

        assert report.roots == []
        assert report.records == []
        assert report.graph.node_count == 0
