"""
Graph Visualization Module
==========================

Describes the membership graph in Graphviz DOT and optionally renders it
with the Graphviz 'dot' binary.

Design Decisions:
-----------------
1. Every node and edge identifier is double-quoted and escaped, so group
   names with spaces, quotes or backslashes stay unambiguous
2. Node color encodes the category; nodes that were never declared fall
   back to the neutral graph-wide default
3. Containment (group in group) edges are drawn bold, principal edges thin
4. A missing renderer is a notice, not an error
"""

import shutil
import subprocess
from pathlib import Path
from typing import Optional

from ..model.graph_builder import MembershipGraph
from ..model.schemas import Diagnostic, DiagnosticLevel, NodeCategory


# Color schemes
DEFAULT_NODE_COLOR = "#e2e8f0"      # Gray

NODE_STYLES = {
    NodeCategory.ROOT: {"fillcolor": "#1a365d", "fontcolor": "#ffffff"},               # Navy
    NodeCategory.INTERMEDIATE_GROUP: {"fillcolor": "#f6ad55", "fontcolor": "#1a202c"},  # Orange
    NodeCategory.PRINCIPAL: {"fillcolor": "#bee3f8", "fontcolor": "#1a202c"},           # Light blue
}

CONTAINMENT_EDGE_STYLE = {"color": "#c05621", "penwidth": "2.0", "style": "bold"}
MEMBER_EDGE_STYLE = {"color": "#718096", "penwidth": "1.0"}


def quote_id(value: str) -> str:
    """Quote a string as a DOT identifier."""
    escaped = (
        str(value)
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "")
        .replace("\n", "\\n")
    )
    return f'"{escaped}"'


def _format_attrs(attrs: dict) -> str:
    return ", ".join(f"{key}={quote_id(value)}" for key, value in attrs.items())


def build_dot(graph: MembershipGraph, title: Optional[str] = None) -> str:
    """Build a DOT description of a membership graph.

    Args:
        graph: Merged membership graph
        title: Optional graph label

    Returns:
        DOT source text
    """
    lines = ["digraph membership {"]
    lines.append('    graph [rankdir="LR", fontname="Helvetica"];')
    lines.append(f'    node [shape="box", style="rounded,filled", fontname="Helvetica", fillcolor={quote_id(DEFAULT_NODE_COLOR)}];')
    lines.append('    edge [arrowsize="0.7"];')
    if title:
        lines.append(f"    label={quote_id(title)};")
        lines.append('    labelloc="t";')
    lines.append("")

    for node in graph.nodes():
        lines.append(f"    {quote_id(node.name)} [{_format_attrs(NODE_STYLES[node.category])}];")

    lines.append("")

    for edge in graph.edges():
        style = CONTAINMENT_EDGE_STYLE if edge.containment else MEMBER_EDGE_STYLE
        lines.append(f"    {quote_id(edge.source)} -> {quote_id(edge.target)} [{_format_attrs(style)}];")

    lines.append("}")
    return "\n".join(lines) + "\n"


class GraphVisualizer:
    """Writes the DOT description and renders it when Graphviz is installed.

    Usage:
        visualizer = GraphVisualizer(graph, output_dir="output")
        dot_path = visualizer.write_dot("group_membership.dot")
        image_path, diagnostic = visualizer.render(dot_path, "png")
    """

    def __init__(self, graph: MembershipGraph, output_dir: str = "output"):
        """Initialize the visualizer.

        Args:
            graph: MembershipGraph to visualize
            output_dir: Directory for output files
        """
        self.graph = graph
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_dot(self, filename: str = "group_membership.dot", title: Optional[str] = None) -> str:
        """Write the DOT description.

        Returns:
            Path to the written file
        """
        output_path = self.output_dir / filename
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(build_dot(self.graph, title))
        return str(output_path)

    def render(self, dot_path: str, image_format: str = "png") -> tuple[Optional[str], Diagnostic]:
        """Render a DOT file with Graphviz.

        Returns:
            (image path or None, diagnostic describing the outcome)
        """
        image_path = str(Path(dot_path).with_suffix(f".{image_format}"))

        dot_bin = shutil.which("dot")
        if not dot_bin:
            return None, Diagnostic(
                DiagnosticLevel.INFO,
                "Graphviz 'dot' not found on PATH; render manually with: "
                f"dot -T{image_format} \"{dot_path}\" -o \"{image_path}\""
            )

        try:
            subprocess.run(
                [dot_bin, f"-T{image_format}", dot_path, "-o", image_path],
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE
            )
        except (subprocess.CalledProcessError, OSError) as e:
            stderr = getattr(e, "stderr", b"") or b""
            detail = stderr.decode("utf-8", errors="replace").strip() or str(e)
            return None, Diagnostic(DiagnosticLevel.WARNING, f"Graphviz rendering failed: {detail}")

        return image_path, Diagnostic(DiagnosticLevel.INFO, f"Rendered graph image: {image_path}")
