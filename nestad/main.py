#!/usr/bin/env python3
"""
nestAD - Privileged Group Nesting Analysis for Active Directory
===============================================================

Command-line interface for running membership scans.

Usage:
    # Protected groups, live LDAP
    python -m nestad -u auditor -p Password123 -d corp.local -s 192.168.1.100

    # Every group under an OU
    python -m nestad -u auditor -d corp.local -s dc01 -m ou --search-base "OU=Admins,DC=corp,DC=local"

    # Offline, from a JSON snapshot
    python -m nestad --snapshot corp.json -m all

Options:
    --username, -u      Domain username
    --password, -p      Domain password (prompted when omitted)
    --ntlm-hash         NTLM hash for NTLM authentication
    --domain, -d        Domain name (e.g., corp.local)
    --server, -s        Domain controller IP address
    --snapshot          JSON snapshot to scan instead of LDAP
    --mode, -m          protected | file | ou | all
    --output, -o        Output directory (default: ./output)
    --no-render         Do not invoke Graphviz
    --verbose, -v       Verbose output

Environment Variables:
    NESTAD_USERNAME     Bind user when -u is not given
    NESTAD_PASSWORD     Bind password when -p is not given
"""

import argparse
import getpass
import sys
import traceback

from . import __version__
from .config import NestadConfig
from .errors import NestadError
from .ingestion.ldap_loader import LDAPDirectory
from .ingestion.snapshot_loader import SnapshotDirectory
from .model.schemas import ScanMode
from .reporting.report_builder import generate_text_report
from .scan import run_scan


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nestad",
        description="nestAD - Privileged Group Nesting Analysis for Active Directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Protected groups
  %(prog)s -u auditor -p Password123 -d corp.local -s 192.168.1.100

  # Groups listed in a CSV file
  %(prog)s -u auditor -p Password123 -d corp.local -s 192.168.1.100 -m file --roots-file groups.csv

  # Whole directory from an offline snapshot
  %(prog)s --snapshot corp.json -m all -o ./results
        """
    )

    # LDAP options
    ldap_group = parser.add_argument_group("LDAP Collection")
    ldap_group.add_argument("-u", "--username", help="Domain username for LDAP authentication")
    ldap_group.add_argument("-p", "--password", help="Domain password for LDAP authentication")
    ldap_group.add_argument(
        "--ntlm-hash",
        dest="ntlm_hash",
        help="NTLM hash for NTLM authentication (instead of password)"
    )
    ldap_group.add_argument("-d", "--domain", help="Domain name (e.g., corp.local)")
    ldap_group.add_argument("-s", "--server", help="Domain controller IP address or hostname")
    ldap_group.add_argument("--ssl", action="store_true", help="Use LDAPS (port 636)")

    # Offline options
    offline_group = parser.add_argument_group("Offline")
    offline_group.add_argument("--snapshot", help="JSON directory snapshot to scan instead of LDAP")

    # Scan options
    scan_group = parser.add_argument_group("Scan Options")
    scan_group.add_argument(
        "-m", "--mode",
        choices=[mode.value for mode in ScanMode],
        help="Root group selection (default: protected)"
    )
    scan_group.add_argument("--roots-file", help="CSV list of root groups (file mode)")
    scan_group.add_argument("--search-base", help="Organizational unit DN (ou mode)")
    scan_group.add_argument(
        "--security-attribute",
        help="Attribute reported as the security flag (default: adminCount)"
    )
    scan_group.add_argument("--max-depth", type=int, help="Maximum nesting depth followed (default: 64)")

    # Output options
    output_group = parser.add_argument_group("Output")
    output_group.add_argument("-o", "--output", help="Output directory for results (default: ./output)")
    output_group.add_argument("--no-render", action="store_true", help="Do not render the graph with Graphviz")
    output_group.add_argument("--format", dest="image_format", help="Rendered image format (default: png)")

    # General options
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--version", action="version", version=f"nestAD {__version__}")

    return parser


def build_config(args: argparse.Namespace) -> NestadConfig:
    """Merge a configuration file with command-line overrides."""
    config = NestadConfig.from_file(args.config) if args.config else NestadConfig()

    if args.mode:
        config.scan.mode = ScanMode.from_string(args.mode)
    if args.roots_file:
        config.scan.roots_file = args.roots_file
    if args.search_base:
        config.scan.search_base = args.search_base
    if args.security_attribute:
        config.scan.security_attribute = args.security_attribute
    if args.max_depth is not None:
        config.scan.max_depth = args.max_depth

    if args.output:
        config.output.output_dir = args.output
    if args.no_render:
        config.output.render_image = False
    if args.image_format:
        config.output.image_format = args.image_format

    if args.ssl:
        config.ldap.use_ssl = True
        config.ldap.port = 636

    config.verbose = args.verbose
    return config


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (NestadError, OSError, ValueError, TypeError) as e:
        parser.error(f"invalid configuration: {e}")

    if args.max_depth is not None and args.max_depth < 1:
        parser.error("--max-depth must be at least 1")

    username = args.username or config.ldap.username
    password = args.password or config.ldap.password

    if not args.snapshot:
        if not (args.domain and args.server):
            parser.error("Must provide -d (domain) and -s (server), or --snapshot")
        if username and not (password or args.ntlm_hash):
            password = getpass.getpass(f"Password for {username}: ")

    print_banner()

    directory = None
    try:
        if args.snapshot:
            directory = SnapshotDirectory.from_file(args.snapshot, verbose=args.verbose)
        else:
            directory = LDAPDirectory(
                server_ip=args.server,
                domain=args.domain,
                username=username,
                password=password,
                ntlm_hash=args.ntlm_hash,
                config=config.ldap,
                verbose=True
            )
            if not directory.connect():
                print("\n[!] Error: could not connect to the directory")
                return 1

        print(f"\n{'='*60}")
        print(f"Starting Scan ({config.scan.mode.value} mode)")
        print(f"{'='*60}\n")

        report = run_scan(directory, config)

        print(f"\n{'='*60}")
        print("Scan Complete")
        print(f"{'='*60}\n")

        print(f"Root groups: {len(report.roots)}")
        print(f"Membership records: {len(report.records)}")
        print(f"  - Direct: {report.direct_count}")
        print(f"  - Nested: {report.nested_count}")
        if report.warnings:
            print(f"Warnings: {len(report.warnings)}")

        print("\nResults saved to:")
        print(f"  - CSV: {report.csv_path}")
        print(f"  - DOT: {report.dot_path}")
        if report.image_path:
            print(f"  - Image: {report.image_path}")
        if report.json_path:
            print(f"  - JSON: {report.json_path}")

        if args.verbose:
            print(f"\n{'='*60}")
            print(generate_text_report(report))

        return 0

    except NestadError as e:
        print(f"\n[!] Error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1

    finally:
        if directory is not None:
            directory.close()


def print_banner():
    """Print the nestAD banner."""
    banner = r"""
                  _      _    ____
  _ __   ___  ___| |_   / \  |  _ \
 | '_ \ / _ \/ __| __| / _ \ | | | |
 | | | |  __/\__ \ |_ / ___ \| |_| |
 |_| |_|\___||___/\__/_/   \_\____/

  Privileged Group Nesting Analysis
  Read-only Active Directory reporting
    """
    print(banner)


if __name__ == "__main__":
    sys.exit(main())
