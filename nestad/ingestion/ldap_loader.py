"""
LDAP Directory Accessor
=======================

Live, read-only access to Active Directory group membership via LDAP.

Features:
- Resolves groups by sAMAccountName or distinguished name
- Lists direct members through the memberOf back-link
- Reads single attributes (security flag, dSHeuristics)
- Lists groups under an organizational unit or the whole domain
- Supports LDAP (389) and LDAPS (636), NTLM, simple and anonymous binds

Design Decisions:
-----------------
1. Uses the ldap3 library for cross-platform LDAP support
2. Multi-entry queries use paged_search so large domains are complete
3. ldap3 failures are translated to DirectoryQueryError at this boundary;
   result code 32 (noSuchObject) becomes a not-found error

Security Consideration:
This module performs read-only operations. No modifications are made to the AD.
"""

from typing import Callable, Optional

from ldap3 import Server, Connection, ALL, BASE, SUBTREE, NTLM, SIMPLE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ..config import LDAPConfig
from ..errors import DirectoryQueryError, GroupNotFoundError, ScopeNotFoundError
from ..model.schemas import GroupRef, ObjectClass, Principal
from .base import DirectoryAccessor, looks_like_dn, rdn_value


RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32

GROUP_ATTRIBUTES = ["sAMAccountName", "distinguishedName"]
MEMBER_ATTRIBUTES = ["sAMAccountName", "name", "objectClass", "distinguishedName"]


def _first(value):
    """Return the first value of a possibly multi-valued attribute."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _get_attribute(attributes: dict, name: str):
    """Case-insensitive attribute lookup."""
    if name in attributes:
        return attributes[name]
    for key, value in attributes.items():
        if key.lower() == name.lower():
            return value
    return None


def classify_object_class(values) -> str:
    """Reduce a multi-valued objectClass to the class reported for a member.

    Computer objects also carry the "user" class, so computer is checked
    first. Unrecognized objects report their most specific class.
    """
    if isinstance(values, str):
        values = [values]
    classes = [str(v) for v in (values or [])]
    lowered = [c.lower() for c in classes]

    for known in (ObjectClass.COMPUTER, ObjectClass.GROUP, ObjectClass.USER):
        if known.value in lowered:
            return known.value

    return classes[-1] if classes else ObjectClass.OTHER.value


class LDAPDirectory(DirectoryAccessor):
    """Directory accessor for Active Directory over LDAP.

    Usage:
        directory = LDAPDirectory(
            server_ip="192.168.1.100",
            domain="corp.local",
            username="auditor",
            password="password"
        )
        directory.connect()
        group = directory.resolve_group("Domain Admins")
        members = directory.list_members(group)
        directory.disconnect()
    """

    def __init__(
        self,
        server_ip: str,
        domain: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        ntlm_hash: Optional[str] = None,
        config: Optional[LDAPConfig] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        connection: Optional[Connection] = None
    ):
        """Initialize the LDAP accessor.

        Args:
            server_ip: IP address or hostname of the domain controller
            domain: Domain name (e.g., "corp.local")
            username: Username for authentication (domain\\user or user@domain)
            password: Password for authentication
            ntlm_hash: NTLM hash for NTLM bind (format: LM:NT)
            config: LDAPConfig object for connection settings
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
            connection: Already bound ldap3 Connection to reuse
        """
        self.server_ip = server_ip
        self.domain = domain
        self.config = config or LDAPConfig()
        self.username = username or self.config.username
        self.password = password or self.config.password
        self.ntlm_hash = ntlm_hash
        self.verbose = verbose
        self.progress_callback = progress_callback

        self.connection: Optional[Connection] = connection

        # Derive base DN from domain
        self.base_dn = ",".join([f"DC={part}" for part in domain.split(".")])

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def connect(self) -> bool:
        """Establish connection to the LDAP server.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            port = self.config.port or (636 if self.config.use_ssl else 389)
            server = Server(
                self.server_ip,
                port=port,
                use_ssl=self.config.use_ssl,
                get_info=ALL,
                connect_timeout=self.config.timeout
            )

            if self.username and (self.password or self.ntlm_hash):
                # Add domain prefix for NTLM
                if '\\' not in self.username and '@' not in self.username:
                    ntlm_user = f"{self.domain.split('.')[0].upper()}\\{self.username}"
                else:
                    ntlm_user = self.username

                auth_credential = self.ntlm_hash or self.password
                auth_type_str = "NTLM hash" if self.ntlm_hash else "Password"

                self._log(f"[*] Connecting to {self.server_ip}:{port} as {ntlm_user} ({auth_type_str})")

                try:
                    self.connection = Connection(
                        server,
                        user=ntlm_user,
                        password=auth_credential,
                        authentication=NTLM,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
                except LDAPException:
                    if self.ntlm_hash:
                        raise
                    self._log("[*] NTLM auth failed, trying simple bind...")
                    self.connection = Connection(
                        server,
                        user=self.username if '@' in self.username else f"{self.username}@{self.domain}",
                        password=self.password,
                        authentication=SIMPLE,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
            else:
                self._log(f"[*] Connecting anonymously to {self.server_ip}:{port}")
                self.connection = Connection(
                    server,
                    auto_bind=True,
                    receive_timeout=self.config.timeout
                )

            self._log(f"[+] Connected successfully to {self.server_ip}")
            return True

        except LDAPException as e:
            self._log(f"[!] Connection failed: {e}")
            return False

    def _require_connection(self) -> Connection:
        if self.connection is None and not self.connect():
            raise DirectoryQueryError(f"Not connected to {self.server_ip}")
        return self.connection

    def _search_base(self, dn: str, attributes: list, search_filter: str = "(objectClass=*)") -> Optional[dict]:
        """Read a single object.

        Returns:
            Response entry dict, or None when the object does not exist or
            does not match the filter
        """
        connection = self._require_connection()
        try:
            connection.search(
                search_base=dn,
                search_filter=search_filter,
                search_scope=BASE,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryQueryError(f"LDAP read of {dn} failed: {e}") from e

        entries = [r for r in (connection.response or []) if r.get('type') == 'searchResEntry']
        if entries:
            return entries[0]

        result = connection.result or {}
        if result.get('result', RESULT_SUCCESS) in (RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT):
            return None
        raise DirectoryQueryError(f"LDAP read of {dn} failed: {result.get('description', 'unknown error')}")

    def _paged_search(self, search_base: str, search_filter: str, attributes: list) -> list[dict]:
        """Run a subtree search across all result pages."""
        connection = self._require_connection()
        try:
            response = connection.extend.standard.paged_search(
                search_base=search_base,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=attributes,
                paged_size=self.config.page_size,
                generator=False
            )
        except LDAPException as e:
            raise DirectoryQueryError(f"LDAP search {search_filter} failed: {e}") from e

        return [r for r in (response or []) if r.get('type') == 'searchResEntry']

    def _group_ref(self, entry: dict) -> GroupRef:
        dn = str(entry.get('dn', ''))
        attrs = entry.get('attributes', {})
        name = _first(_get_attribute(attrs, 'sAMAccountName'))
        return GroupRef(distinguished_name=dn, name=str(name) if name else rdn_value(dn))

    def resolve_group(self, identity: str) -> GroupRef:
        if looks_like_dn(identity):
            entry = self._search_base(identity, GROUP_ATTRIBUTES, "(objectClass=group)")
        else:
            entries = self._paged_search(
                self.base_dn,
                f"(&(objectClass=group)(sAMAccountName={escape_filter_chars(identity)}))",
                GROUP_ATTRIBUTES
            )
            entry = entries[0] if entries else None

        if entry is None:
            raise GroupNotFoundError(identity)
        return self._group_ref(entry)

    def list_members(self, group: GroupRef) -> list[Principal]:
        entries = self._paged_search(
            self.base_dn,
            f"(memberOf={escape_filter_chars(group.distinguished_name)})",
            MEMBER_ATTRIBUTES
        )

        members = []
        for entry in entries:
            dn = str(entry.get('dn', ''))
            attrs = entry.get('attributes', {})
            name = _first(_get_attribute(attrs, 'sAMAccountName')) or _first(_get_attribute(attrs, 'name'))
            members.append(Principal(
                name=str(name) if name else rdn_value(dn),
                identifier=dn,
                object_class=classify_object_class(_get_attribute(attrs, 'objectClass')),
            ))
        return members

    def get_attribute(self, identifier: str, name: str) -> Optional[str]:
        entry = self._search_base(identifier, [name])
        if entry is None:
            return None

        value = _first(_get_attribute(entry.get('attributes', {}), name))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode('utf-8', errors='replace')
        return str(value)

    def list_groups(self, scope: Optional[str] = None) -> list[GroupRef]:
        if scope is not None and self._search_base(scope, ['distinguishedName']) is None:
            raise ScopeNotFoundError(scope)

        entries = self._paged_search(scope or self.base_dn, "(objectClass=group)", GROUP_ATTRIBUTES)
        return [self._group_ref(entry) for entry in entries]

    def _configuration_dn(self) -> str:
        """Configuration naming context, from RootDSE when available."""
        info = getattr(getattr(self.connection, 'server', None), 'info', None)
        other = getattr(info, 'other', None) or {}
        context = _first(other.get('configurationNamingContext'))
        return str(context) if context else f"CN=Configuration,{self.base_dn}"

    def get_heuristics(self) -> Optional[str]:
        self._require_connection()
        dn = f"CN=Directory Service,CN=Windows NT,CN=Services,{self._configuration_dn()}"
        return self.get_attribute(dn, 'dSHeuristics')

    def disconnect(self) -> None:
        """Close the LDAP connection."""
        if self.connection:
            try:
                self.connection.unbind()
            except LDAPException as e:
                self._log(f"[!] Error during unbind: {e}")
            self.connection = None

    def close(self) -> None:
        self.disconnect()
