"""
Report Builder Module
=====================

Writes a MembershipReport to disk.

Outputs:
- CSV table of membership records
- Graphviz DOT description of the membership graph
- Rendered image (when Graphviz is installed and rendering is enabled)
- JSON summary of the whole report

Design Decisions:
-----------------
1. The report object is the single source for every output format
2. File paths are stored back on the report for the CLI to print
3. Rendering outcomes are recorded as diagnostics
"""

import json
from pathlib import Path
from typing import Optional

from ..config import OutputConfig
from ..model.schemas import MembershipReport, MembershipType
from .csv_export import CSVExporter
from .visualization import GraphVisualizer


class ReportBuilder:
    """Writes report files for a scan.

    Usage:
        builder = ReportBuilder(output_dir="output/20240101_120000_protected")
        report = builder.write(report)
        print(report.csv_path, report.dot_path)
    """

    def __init__(
        self,
        output_dir: str = "output",
        config: Optional[OutputConfig] = None
    ):
        """Initialize the report builder.

        Args:
            output_dir: Directory for output files
            config: Output configuration (uses defaults if None)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or OutputConfig()

    def write(self, report: MembershipReport, render: Optional[bool] = None) -> MembershipReport:
        """Write all outputs for a report.

        Args:
            report: Assembled report
            render: Override OutputConfig.render_image

        Returns:
            The same report with output paths filled in
        """
        exporter = CSVExporter(path_delimiter=self.config.path_delimiter)
        report.csv_path = exporter.export(report.records, str(self.output_dir / self.config.csv_filename))

        visualizer = GraphVisualizer(report.graph, str(self.output_dir))
        title = ", ".join(report.roots) if report.roots else None
        report.dot_path = visualizer.write_dot(self.config.dot_filename, title=title)

        if self.config.render_image if render is None else render:
            image_path, diagnostic = visualizer.render(report.dot_path, self.config.image_format)
            report.image_path = image_path
            report.diagnostics.append(diagnostic)

        if self.config.generate_json:
            report.json_path = self._save_json_report(report)

        return report

    def _save_json_report(self, report: MembershipReport) -> str:
        """Save the report as JSON.

        Returns:
            Path to saved JSON file
        """
        json_path = self.output_dir / self.config.json_filename
        report.json_path = str(json_path)

        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2, default=str)

        return str(json_path)


def generate_text_report(report: MembershipReport) -> str:
    """Generate a text-based report summary.

    Args:
        report: MembershipReport to summarize

    Returns:
        Formatted text report
    """
    lines = [
        "=" * 60,
        "nestAD - Privileged Group Membership Report",
        "=" * 60,
        "",
        f"Generated: {report.metadata.get('timestamp', 'Unknown')}",
        f"Scan mode: {report.metadata.get('mode', 'Unknown')}",
        f"Graph: {report.graph.node_count} nodes, {report.graph.edge_count} edges",
        "",
        "SUMMARY",
        "-" * 40,
        f"Root groups scanned: {len(report.roots)}",
        f"Membership records: {len(report.records)}",
        f"  - Direct: {report.direct_count}",
        f"  - Nested: {report.nested_count}",
        "",
    ]

    # Per-root breakdown
    if report.roots:
        lines.extend(["ROOT GROUPS", "-" * 40])
        for root in report.roots:
            root_records = [r for r in report.records if r.root_name == root]
            nested = sum(1 for r in root_records if r.membership_type == MembershipType.NESTED)
            lines.append(f"  {root}: {len(root_records)} members ({nested} nested)")
        lines.append("")

    cycles = report.graph.containment_cycles()
    if cycles:
        lines.extend(["CIRCULAR NESTING", "-" * 40])
        for cycle in cycles:
            lines.append("  " + " -> ".join(cycle + [cycle[0]]))
        lines.append("")

    if report.warnings:
        lines.extend(["WARNINGS", "-" * 40])
        for diagnostic in report.warnings:
            lines.append(f"  [{diagnostic.level.value}] {diagnostic.message}")
        lines.append("")

    lines.extend([
        "=" * 60,
        "End of Report",
        "=" * 60,
    ])

    return "\n".join(lines)
