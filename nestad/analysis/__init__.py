"""
nestAD Analysis Module
======================

Deterministic membership analysis.

Components:
- root_selector.py: Chooses the root groups of a scan
- traversal.py: Depth-first nested membership walk (cycle-safe)
- assembler.py: Merges per-root results into one ordered report

Design Philosophy:
- No component mutates the directory
- Per-branch failures become diagnostics; only bad scan input is fatal
"""

from .assembler import ReportAssembler, sort_records
from .root_selector import RootSelector
from .traversal import MembershipTraverser
