"""
nestAD Exceptions
=================

Exception hierarchy shared by the directory accessors, the root selector
and the scan pipeline.

Failure policy:
- GroupNotFoundError / ScopeNotFoundError: the named object does not exist.
- DirectoryQueryError: any other directory failure (permissions,
  connectivity, malformed response). Never retried.
- ConfigurationError: invalid or missing external input for a scan mode.
  This is the only error that ends a whole run.
"""


class NestadError(Exception):
    """Base class for all nestAD errors."""


class DirectoryError(NestadError):
    """A directory lookup failed."""


class GroupNotFoundError(DirectoryError):
    """A group name or distinguished name did not resolve."""

    def __init__(self, identity: str):
        super().__init__(f"Group not found: {identity}")
        self.identity = identity


class ScopeNotFoundError(DirectoryError):
    """A search base (organizational unit) does not exist."""

    def __init__(self, scope: str):
        super().__init__(f"Search base not found: {scope}")
        self.scope = scope


class DirectoryQueryError(DirectoryError):
    """A directory query failed for a reason other than not-found."""


class ConfigurationError(NestadError):
    """Invalid or missing input for root-set acquisition."""
