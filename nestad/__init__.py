"""
nestAD - Privileged Group Nesting Analysis for Active Directory
===============================================================

A Python tool that walks nested membership of privileged groups,
classifies every member as direct or nested with its full nesting path,
and reports the result as CSV and as a Graphviz graph.

Architecture Overview:
----------------------
- ingestion/: Directory accessors (LDAP live, JSON snapshot)
- model/: Typed data models and the NetworkX membership graph
- analysis/: Root selection, cycle-safe traversal, report assembly
- reporting/: CSV, DOT, JSON and text outputs
- scan.py: End-to-end pipeline used by the CLI

Design Decisions:
-----------------
1. NetworkX is used as the graph backend
2. All data models use Python dataclasses
3. The scanner is read-only; it never modifies the directory
4. Per-branch failures become diagnostics; the scan continues
"""

__version__ = "1.0.0"
__author__ = "nestAD Project"

from .config import NestadConfig
