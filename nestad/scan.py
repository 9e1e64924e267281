"""
Scan Pipeline
=============

High-level entry point used by the CLI.

Pipeline:
1. Root selection for the configured scan mode
2. Per-root resolution and membership traversal
3. Report assembly (merge, sort)
4. Report output (CSV, DOT, optional image, JSON)

Design Decisions:
-----------------
1. Single entry point (run_scan) that returns a MembershipReport
2. Only ConfigurationError escapes; every other failure is a diagnostic
3. Progress updates via callback, as printed by the CLI
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .analysis.assembler import ReportAssembler
from .analysis.root_selector import RootSelector
from .analysis.traversal import MembershipTraverser
from .config import NestadConfig, OutputConfig
from .errors import DirectoryError, GroupNotFoundError
from .ingestion.base import DirectoryAccessor
from .model.schemas import DiagnosticLevel, MembershipReport, ScanMode
from .reporting.report_builder import ReportBuilder


def run_directory(output: OutputConfig, mode: ScanMode, now: Optional[datetime] = None) -> Path:
    """Folder that receives one run's output files."""
    base = Path(output.output_dir)
    if not output.timestamped_runs:
        return base
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return base / f"{stamp}_{mode.value}"


def run_scan(
    directory: DirectoryAccessor,
    config: Optional[NestadConfig] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    write_outputs: bool = True
) -> MembershipReport:
    """Run a complete membership scan.

    Args:
        directory: Accessor for the directory to scan
        config: Configuration (uses defaults if None)
        progress_callback: Optional callback for progress updates
        write_outputs: Whether to write report files

    Returns:
        MembershipReport with sorted records, merged graph and diagnostics

    Raises:
        ConfigurationError: Root selection input is missing or unusable

    Example:
        directory = SnapshotDirectory.from_file("corp.json")
        report = run_scan(directory, NestadConfig(scan=ScanConfig(mode="all")))
        print(report.csv_path)
    """
    config = config or NestadConfig()

    def log(message: str):
        """Log message to console and/or callback."""
        if config.verbose:
            print(message)
        if progress_callback:
            progress_callback(message)

    started = datetime.now()
    mode = config.scan.mode

    # Step 1: Root selection
    selector = RootSelector(directory, config.scan, verbose=False, progress_callback=log)
    roots = selector.select()

    assembler = ReportAssembler()
    assembler.diagnostics.extend(selector.diagnostics)

    if not roots:
        log("[*] No root groups selected - report will be empty")

    # Step 2: Traverse each root
    traverser = MembershipTraverser(directory, config.scan, verbose=False, progress_callback=log)

    for root_name in roots:
        try:
            root = directory.resolve_group(root_name)
        except GroupNotFoundError:
            assembler.add_diagnostic(DiagnosticLevel.WARNING, f"Root group not found: {root_name}", root_name)
            log(f"[!] Root group not found: {root_name}")
            continue
        except DirectoryError as e:
            assembler.add_diagnostic(DiagnosticLevel.WARNING, f"Could not resolve root group {root_name}: {e}", root_name)
            log(f"[!] Could not resolve root group {root_name}: {e}")
            continue

        assembler.add(traverser.traverse(root, root_name))

    # Step 3: Assemble
    report = assembler.build(metadata={
        'timestamp': started.isoformat(),
        'mode': mode.value,
        'selected_roots': roots,
        'security_attribute': config.scan.security_attribute,
        'config': config.to_dict(),
    })
    log(f"[+] Assembled {len(report.records)} records from {len(report.roots)} root groups")

    # Step 4: Write outputs
    if write_outputs:
        output_dir = run_directory(config.output, mode, started)
        log(f"[*] Writing report to {output_dir}...")
        ReportBuilder(str(output_dir), config.output).write(report)
        log(f"[+] CSV report saved to {report.csv_path}")
        log(f"[+] Graph description saved to {report.dot_path}")
        if report.image_path:
            log(f"[+] Graph image saved to {report.image_path}")
        elif config.output.render_image:
            log(f"[*] {report.diagnostics[-1].message}")

    return report
