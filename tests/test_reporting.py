"""Tests for the CSV, DOT, JSON and text outputs."""

import csv
import json
import subprocess

import pytest

from nestad.config import OutputConfig
from nestad.model.graph_builder import MembershipGraph
from nestad.model.schemas import (
    DiagnosticLevel,
    MembershipRecord,
    MembershipReport,
    MembershipType,
    NodeCategory,
)
from nestad.reporting import visualization
from nestad.reporting.csv_export import CSV_COLUMNS, CSVExporter
from nestad.reporting.report_builder import ReportBuilder, generate_text_report
from nestad.reporting.visualization import GraphVisualizer, build_dot, quote_id


def read_rows(path):
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.reader(f))


@pytest.fixture
def sample_report():
    graph = MembershipGraph()
    graph.declare_node("Domain Admins", NodeCategory.ROOT)
    graph.declare_node("Tier0", NodeCategory.INTERMEDIATE_GROUP)
    graph.declare_node("bob", NodeCategory.PRINCIPAL)
    graph.add_edge("Domain Admins", "Tier0", containment=True)
    graph.add_edge("Tier0", "bob")
    graph.add_edge("Tier0", "Tier0", containment=True)

    records = [
        MembershipRecord("Domain Admins", "Tier0", "group", MembershipType.DIRECT,
                         security_flag="N/A", identifier="CN=Tier0,OU=Admins,DC=corp,DC=local"),
        MembershipRecord("Domain Admins", "bob", "user", MembershipType.NESTED,
                         source_group="Tier0", path=("Domain Admins", "Tier0"),
                         security_flag="1", identifier="CN=bob,CN=Users,DC=corp,DC=local"),
    ]
    return MembershipReport(
        roots=["Domain Admins"],
        records=records,
        graph=graph,
        metadata={"timestamp": "2024-01-01T12:00:00", "mode": "protected"},
    )


class TestCSVExporter:
    def test_header_and_rows(self, tmp_path, sample_report):
        path = CSVExporter().export(sample_report.records, str(tmp_path / "report.csv"))

        rows = read_rows(path)
        assert rows[0] == CSV_COLUMNS
        assert rows[2] == [
            "Domain Admins", "bob", "user", "Nested", "Tier0",
            "Domain Admins -> Tier0", "1", "CN=bob,CN=Users,DC=corp,DC=local",
        ]
        assert rows[1][4:7] == ["", "", "N/A"]

    def test_empty_report_has_header_only(self, tmp_path):
        path = CSVExporter().export([], str(tmp_path / "nested" / "empty.csv"))

        assert read_rows(path) == [CSV_COLUMNS]

    def test_custom_path_delimiter(self, tmp_path, sample_report):
        path = CSVExporter(path_delimiter=" / ").export(sample_report.records, str(tmp_path / "r.csv"))

        assert read_rows(path)[2][5] == "Domain Admins / Tier0"

    def test_values_with_commas_are_quoted(self, tmp_path):
        record = MembershipRecord("Ops, Tier0", "x", "user", MembershipType.DIRECT)

        path = CSVExporter().export([record], str(tmp_path / "r.csv"))

        assert read_rows(path)[1][0] == "Ops, Tier0"


class TestDot:
    def test_quote_id_escapes(self):
        assert quote_id('Ops "Tier0"') == '"Ops \\"Tier0\\""'
        assert quote_id("a\\b") == '"a\\\\b"'
        assert quote_id("two\nlines\r") == '"two\\nlines"'

    def test_structure(self, sample_report):
        dot = build_dot(sample_report.graph, title="Domain Admins")

        assert dot.startswith("digraph membership {\n")
        assert dot.endswith("}\n")
        assert 'label="Domain Admins";' in dot
        assert '"Domain Admins" [fillcolor="#1a365d", fontcolor="#ffffff"];' in dot
        assert '"Tier0" [fillcolor="#f6ad55"' in dot
        assert '"bob" [fillcolor="#bee3f8"' in dot
        assert '"Domain Admins" -> "Tier0" [color="#c05621", penwidth="2.0", style="bold"];' in dot
        assert '"Tier0" -> "bob" [color="#718096", penwidth="1.0"];' in dot
        assert '"Tier0" -> "Tier0"' in dot

    def test_nodes_precede_edges(self, sample_report):
        lines = build_dot(sample_report.graph).splitlines()

        node_lines = [i for i, line in enumerate(lines) if "fillcolor" in line and "->" not in line and "node [" not in line]
        edge_lines = [i for i, line in enumerate(lines) if "->" in line]
        assert max(node_lines) < min(edge_lines)

    def test_undeclared_nodes_use_default_style(self):
        graph = MembershipGraph()
        graph.add_edge("A", "B")

        dot = build_dot(graph)

        assert f'fillcolor="{visualization.DEFAULT_NODE_COLOR}"' in dot
        assert '"A" [' not in dot
        assert '"A" -> "B"' in dot

    def test_parallel_edges_are_emitted(self):
        graph = MembershipGraph()
        graph.add_edge("A", "u")
        graph.add_edge("A", "u")

        assert build_dot(graph).count('"A" -> "u"') == 2

    def test_empty_graph(self):
        dot = build_dot(MembershipGraph())

        assert dot.startswith("digraph membership {")
        assert "->" not in dot


class TestRender:
    def test_missing_graphviz(self, tmp_path, sample_report, monkeypatch):
        monkeypatch.setattr(visualization.shutil, "which", lambda name: None)
        visualizer = GraphVisualizer(sample_report.graph, str(tmp_path))
        dot_path = visualizer.write_dot()

        image_path, diagnostic = visualizer.render(dot_path, "svg")

        assert image_path is None
        assert diagnostic.level == DiagnosticLevel.INFO
        assert "not found on PATH" in diagnostic.message
        assert "dot -Tsvg" in diagnostic.message

    def test_successful_render(self, tmp_path, sample_report, monkeypatch):
        calls = []
        monkeypatch.setattr(visualization.shutil, "which", lambda name: "/usr/bin/dot")
        monkeypatch.setattr(visualization.subprocess, "run", lambda args, **kwargs: calls.append(args))
        visualizer = GraphVisualizer(sample_report.graph, str(tmp_path))
        dot_path = visualizer.write_dot()

        image_path, diagnostic = visualizer.render(dot_path)

        assert image_path == str(tmp_path / "group_membership.png")
        assert diagnostic.level == DiagnosticLevel.INFO
        assert calls == [["/usr/bin/dot", "-Tpng", dot_path, "-o", image_path]]

    def test_failed_render(self, tmp_path, sample_report, monkeypatch):
        def fail(args, **kwargs):
            raise subprocess.CalledProcessError(1, args, stderr=b"syntax error in line 3")

        monkeypatch.setattr(visualization.shutil, "which", lambda name: "/usr/bin/dot")
        monkeypatch.setattr(visualization.subprocess, "run", fail)
        visualizer = GraphVisualizer(sample_report.graph, str(tmp_path))

        image_path, diagnostic = visualizer.render(visualizer.write_dot())

        assert image_path is None
        assert diagnostic.level == DiagnosticLevel.WARNING
        assert "syntax error in line 3" in diagnostic.message


class TestReportBuilder:
    def test_writes_all_outputs(self, tmp_path, sample_report, monkeypatch):
        monkeypatch.setattr(visualization.shutil, "which", lambda name: None)

        report = ReportBuilder(str(tmp_path), OutputConfig()).write(sample_report)

        assert len(read_rows(report.csv_path)) == 3
        with open(report.dot_path, encoding="utf-8") as f:
            assert f.read() == build_dot(report.graph, title="Domain Admins")
        assert report.image_path is None
        assert report.diagnostics[-1].level == DiagnosticLevel.INFO

        with open(report.json_path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["total_records"] == 2
        assert data["nested_records"] == 1
        assert data["records"][1]["path"] == ["Domain Admins", "Tier0"]
        assert data["containment_cycles"] == [["Tier0"]]

    def test_render_disabled(self, tmp_path, sample_report):
        config = OutputConfig(render_image=False, generate_json=False)

        report = ReportBuilder(str(tmp_path), config).write(sample_report)

        assert report.image_path is None
        assert report.json_path is None
        assert report.diagnostics == []
        assert sorted(p.name for p in tmp_path.iterdir()) == ["group_membership.csv", "group_membership.dot"]


def test_text_report(sample_report):
    text = generate_text_report(sample_report)

    assert "Membership records: 2" in text
    assert "Domain Admins: 2 members (1 nested)" in text
    assert "Tier0 -> Tier0" in text
