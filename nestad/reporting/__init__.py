"""
nestAD Reporting Module
=======================

Report generation and visualization for scan results.

Components:
- csv_export.py: Tabular membership report
- visualization.py: Graphviz DOT description and optional rendering
- report_builder.py: Writes every output for a report, text summary

Design Philosophy:
- Exporters format the report model; they never query the directory
- Rendering is optional and depends only on a host Graphviz install
"""

from .csv_export import CSVExporter
from .report_builder import ReportBuilder, generate_text_report
from .visualization import GraphVisualizer, build_dot
