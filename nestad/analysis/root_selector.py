"""
Root Selector
=============

Produces the ordered, distinct list of root group names for a scan.

Modes:
- protected: the AdminSDHolder-protected groups, minus the operator
  groups excluded through dSHeuristics
- file: group names read from a CSV file
- ou: every group under an organizational unit
- all: every group in the directory

Design Decisions:
-----------------
1. Names are deduplicated case-insensitively; first spelling and order win
2. Unusable input for file, ou and all modes raises ConfigurationError,
   which ends the run
3. In protected mode an unreadable dSHeuristics only produces a warning
"""

import csv
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config import ScanConfig
from ..errors import ConfigurationError, DirectoryError, ScopeNotFoundError
from ..ingestion.base import DirectoryAccessor
from ..model.schemas import Diagnostic, DiagnosticLevel, ScanMode


# dSHeuristics position 16 (dwAdminSDExMask): any value other than "0"
# excludes the operator groups from AdminSDHolder protection
ADMINSD_EXCLUDED_GROUPS = (
    "Account Operators",
    "Server Operators",
    "Print Operators",
    "Backup Operators",
)
ADMINSD_FLAG_INDEX = 15

# Header names accepted for the group column of a roots file
ROOT_FILE_COLUMNS = ("groupname", "group", "name", "samaccountname")


def unique_names(names: Iterable[str]) -> list[str]:
    """Strip, drop blanks and deduplicate names case-insensitively."""
    seen = set()
    unique = []
    for name in names:
        name = (name or "").strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        unique.append(name)
    return unique


def excluded_operator_groups(heuristics: Optional[str]) -> set[str]:
    """Operator groups excluded from AdminSDHolder protection.

    Args:
        heuristics: dSHeuristics value, or None when unset

    Returns:
        Names of the excluded groups (empty when the flag is unset)
    """
    if not heuristics or len(heuristics) <= ADMINSD_FLAG_INDEX:
        return set()

    if heuristics[ADMINSD_FLAG_INDEX] == "0":
        return set()

    return set(ADMINSD_EXCLUDED_GROUPS)


def read_roots_file(path: str) -> list[str]:
    """Read group names from a CSV file.

    The group column is taken from a recognized header (GroupName, Group,
    Name, sAMAccountName); without one, the first column is used. Blank
    lines and lines starting with '#' are skipped.

    Raises:
        ConfigurationError: The file cannot be read or parsed
    """
    file_path = Path(path)
    try:
        with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
            rows = [row for row in csv.reader(f)]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ConfigurationError(f"Cannot read roots file {file_path}: {e}") from e

    rows = [row for row in rows if row and row[0].strip() and not row[0].lstrip().startswith("#")]
    if not rows:
        return []

    column = 0
    header = [cell.strip().lower() for cell in rows[0]]
    for candidate in ROOT_FILE_COLUMNS:
        if candidate in header:
            column = header.index(candidate)
            rows = rows[1:]
            break

    return unique_names(row[column] for row in rows if len(row) > column)


class RootSelector:
    """Chooses the root groups of a scan.

    Usage:
        selector = RootSelector(directory, config.scan)
        roots = selector.select()
        for diagnostic in selector.diagnostics:
            print(diagnostic.message)
    """

    def __init__(
        self,
        directory: DirectoryAccessor,
        config: Optional[ScanConfig] = None,
        verbose: bool = False,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.directory = directory
        self.config = config or ScanConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.diagnostics: list[Diagnostic] = []

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def select(self, mode: Optional[ScanMode] = None) -> list[str]:
        """Produce root group names for a scan mode.

        Args:
            mode: Scan mode (defaults to the configured mode)

        Returns:
            Ordered list of distinct group names

        Raises:
            ConfigurationError: Input for the mode is missing or unusable
        """
        mode = mode or self.config.mode
        self._log(f"[*] Selecting root groups ({mode.value} mode)...")

        if mode == ScanMode.PROTECTED:
            roots = self._protected_groups()
        elif mode == ScanMode.FILE:
            roots = self._file_groups()
        elif mode == ScanMode.OU:
            roots = self._ou_groups()
        elif mode == ScanMode.ALL:
            roots = self._all_groups()
        else:
            raise ConfigurationError(f"Unsupported scan mode: {mode}")

        self._log(f"[+] Selected {len(roots)} root groups")
        return roots

    def _protected_groups(self) -> list[str]:
        try:
            heuristics = self.directory.get_heuristics()
        except DirectoryError as e:
            message = f"Could not read dSHeuristics, assuming no exclusions: {e}"
            self.diagnostics.append(Diagnostic(DiagnosticLevel.WARNING, message))
            self._log(f"[!] {message}")
            heuristics = None

        excluded_names = excluded_operator_groups(heuristics)
        if excluded_names:
            self._log(f"[*] dSHeuristics excludes: {', '.join(sorted(excluded_names))}")
        excluded = {name.lower() for name in excluded_names}

        return [
            name for name in unique_names(self.config.protected_groups)
            if name.lower() not in excluded
        ]

    def _file_groups(self) -> list[str]:
        if not self.config.roots_file:
            raise ConfigurationError("File mode requires a roots file")
        return read_roots_file(self.config.roots_file)

    def _ou_groups(self) -> list[str]:
        if not self.config.search_base:
            raise ConfigurationError("OU mode requires a search base")

        try:
            groups = self.directory.list_groups(self.config.search_base)
        except ScopeNotFoundError as e:
            raise ConfigurationError(f"Organizational unit does not exist: {self.config.search_base}") from e
        except DirectoryError as e:
            raise ConfigurationError(f"Could not list groups under {self.config.search_base}: {e}") from e

        return unique_names(group.name for group in groups)

    def _all_groups(self) -> list[str]:
        try:
            groups = self.directory.list_groups()
        except DirectoryError as e:
            raise ConfigurationError(f"Could not list directory groups: {e}") from e

        return unique_names(group.name for group in groups)
