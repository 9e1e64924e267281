"""
nestAD Configuration Module
===========================

Centralized configuration management for the nestAD scanner.
Supports environment variables for credentials.

Design Decision:
- Configuration is a dataclass tree that is passed through the pipeline
- Each component extracts the sub-configuration it needs
- Output paths are configurable for different environments
"""

import json
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional

from .model.schemas import ScanMode


# Groups protected by AdminSDHolder in a default domain
DEFAULT_PROTECTED_GROUPS = [
    "Account Operators",
    "Administrators",
    "Backup Operators",
    "Domain Admins",
    "Domain Controllers",
    "Enterprise Admins",
    "Enterprise Key Admins",
    "Key Admins",
    "Print Operators",
    "Read-only Domain Controllers",
    "Replicator",
    "Schema Admins",
    "Server Operators",
]


@dataclass
class LDAPConfig:
    """Configuration for LDAP directory access.

    Attributes:
        use_ssl: Whether to use LDAPS (port 636) vs LDAP (port 389)
        page_size: Page size for paged LDAP searches
        timeout: Connection and receive timeout in seconds
        username: Bind user (loaded from NESTAD_USERNAME if not provided)
        password: Bind password (loaded from NESTAD_PASSWORD if not provided)
    """
    use_ssl: bool = False
    port: Optional[int] = None  # Auto-detect based on use_ssl
    page_size: int = 1000
    timeout: int = 30
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self):
        if self.port is None:
            self.port = 636 if self.use_ssl else 389
        if self.username is None:
            self.username = os.environ.get("NESTAD_USERNAME")
        if self.password is None:
            self.password = os.environ.get("NESTAD_PASSWORD")


@dataclass
class ScanConfig:
    """Configuration for root selection and traversal.

    Attributes:
        mode: How root groups are chosen
        roots_file: CSV list of group names (file mode)
        search_base: Organizational unit DN (ou mode)
        protected_groups: Candidate roots for protected mode
        security_attribute: Attribute reported as the security flag
        max_depth: Deepest nesting path followed before a branch is cut
    """
    mode: ScanMode = ScanMode.PROTECTED
    roots_file: Optional[str] = None
    search_base: Optional[str] = None
    protected_groups: list = field(default_factory=lambda: list(DEFAULT_PROTECTED_GROUPS))
    security_attribute: str = "adminCount"
    max_depth: int = 64

    def __post_init__(self):
        if isinstance(self.mode, str):
            self.mode = ScanMode.from_string(self.mode)
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")


@dataclass
class OutputConfig:
    """Configuration for output and reporting.

    Attributes:
        output_dir: Parent directory for run folders
        timestamped_runs: Write each run into <timestamp>_<mode>/
        render_image: Invoke Graphviz 'dot' when it is installed
        image_format: Output format passed to 'dot' (png, svg, pdf)
        path_delimiter: Separator for nesting paths in the CSV
    """
    output_dir: str = "output"
    timestamped_runs: bool = True
    csv_filename: str = "group_membership.csv"
    dot_filename: str = "group_membership.dot"
    json_filename: str = "nestad_results.json"
    generate_json: bool = True
    render_image: bool = True
    image_format: str = "png"
    path_delimiter: str = " -> "


@dataclass
class NestadConfig:
    """Main configuration container for nestAD.

    Usage:
        config = NestadConfig()  # Uses all defaults
        config = NestadConfig(scan=ScanConfig(mode="ou", search_base="OU=Admins,DC=corp,DC=local"))
    """
    ldap: LDAPConfig = field(default_factory=LDAPConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Verbosity level for logging
    verbose: bool = True

    @classmethod
    def from_dict(cls, config_dict: dict) -> "NestadConfig":
        """Create configuration from a dictionary.

        Useful for loading from JSON files or CLI arguments.
        """
        return cls(
            ldap=LDAPConfig(**config_dict.get("ldap", {})),
            scan=ScanConfig(**config_dict.get("scan", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            verbose=config_dict.get("verbose", True)
        )

    @classmethod
    def from_file(cls, path: str) -> "NestadConfig":
        """Load configuration from a JSON file."""
        with open(Path(path), "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization.

        The password is never included.
        """
        data = asdict(self)
        data["scan"]["mode"] = self.scan.mode.value
        data["ldap"].pop("password", None)
        return data


# Default global configuration instance
_default_config: Optional[NestadConfig] = None


def get_config() -> NestadConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = NestadConfig()
    return _default_config


def set_config(config: NestadConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
