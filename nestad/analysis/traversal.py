"""
Membership Traversal
====================

Depth-first walk of the "group contains member" relation below one root.

For every member reached, the traversal emits a MembershipRecord that
says whether the member sits directly in the root or is nested below it,
which group listed it, and the chain of groups leading there.

Algorithm:
----------
1. Declare the current group as a graph node (root or intermediate)
2. Stop if the group was already expanded in this root's walk
3. Stop if the nesting path has reached the depth limit
4. List the group's direct members; a failure ends this branch only
5. For each member: emit a record, declare its node, add the edge, and
   descend into member groups not yet expanded, with the current group
   appended to the path

The walk keeps its own stack of partially listed groups instead of
recursing, so arbitrarily deep nesting cannot exhaust the interpreter
stack. The visited set lives for exactly one call to traverse(), so a
sub-tree reachable from two roots is walked and reported once per root.
"""

from typing import Callable, Optional

from ..config import ScanConfig
from ..errors import DirectoryError
from ..ingestion.base import DirectoryAccessor
from ..model.schemas import (
    NOT_APPLICABLE,
    Diagnostic,
    DiagnosticLevel,
    GroupRef,
    MembershipRecord,
    MembershipType,
    NodeCategory,
    Principal,
    TraversalResult,
)


class MembershipTraverser:
    """Walks nested group membership below a root group.

    Usage:
        traverser = MembershipTraverser(directory)
        root = directory.resolve_group("Domain Admins")
        result = traverser.traverse(root, "Domain Admins")
        for record in result.records:
            print(record.member_name, record.membership_type.value, record.full_path)
    """

    def __init__(
        self,
        directory: DirectoryAccessor,
        config: Optional[ScanConfig] = None,
        verbose: bool = False,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the traverser.

        Args:
            directory: Accessor used for member and attribute lookups
            config: Scan configuration (uses defaults if None)
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.directory = directory
        self.config = config or ScanConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _warn(self, result: TraversalResult, message: str, group: Optional[str] = None) -> None:
        result.diagnostics.append(Diagnostic(DiagnosticLevel.WARNING, message, group))
        self._log(f"[!] {message}")

    def traverse(self, root: GroupRef, root_name: str) -> TraversalResult:
        """Traverse all membership below a root group.

        Args:
            root: Resolved root group
            root_name: Name the scan reports the root under

        Returns:
            TraversalResult with records in discovery order, the graph
            and any diagnostics
        """
        result = TraversalResult(root_name=root_name)
        visited: set[str] = set()

        self._log(f"[*] Traversing {root_name}...")

        # Explicit stack of (group name, path to group, pending members);
        # nesting depth is not limited by the interpreter's recursion limit
        stack = []
        frame = self._enter(root, root_name, [], visited, result)
        if frame:
            stack.append(frame)

        while stack:
            group_name, path, members = stack[-1]
            member = next(members, None)
            if member is None:
                stack.pop()
                continue

            child = self._visit_member(member, group_name, path, visited, result)
            if child is not None:
                frame = self._enter(child, member.name, path + [group_name], visited, result)
                if frame:
                    stack.append(frame)

        self._log(f"[+] {root_name}: {len(result.records)} membership records")

        return result

    def _enter(
        self,
        group: GroupRef,
        group_name: str,
        path: list[str],
        visited: set[str],
        result: TraversalResult
    ) -> Optional[tuple]:
        """Start expanding a group.

        Returns:
            Stack frame for the group, or None when it is not expanded
        """
        category = NodeCategory.ROOT if not path else NodeCategory.INTERMEDIATE_GROUP
        result.graph.declare_node(group_name, category)

        # Cycle guard
        if group.visit_key in visited:
            return None

        if len(path) >= self.config.max_depth:
            self._warn(
                result,
                f"Nesting depth limit ({self.config.max_depth}) reached at {group_name}; branch not expanded",
                group_name
            )
            return None

        visited.add(group.visit_key)

        try:
            members = self.directory.list_members(group)
        except DirectoryError as e:
            self._warn(result, f"Could not list members of {group_name}: {e}", group_name)
            return None

        return group_name, path, iter(members)

    def _visit_member(
        self,
        member: Principal,
        group_name: str,
        path: list[str],
        visited: set[str],
        result: TraversalResult
    ) -> Optional[GroupRef]:
        """Record one member of a group.

        Returns:
            The member's resolved group when it still has to be expanded
        """
        is_direct = not path
        member_path = path + [group_name]

        result.records.append(MembershipRecord(
            root_name=result.root_name,
            member_name=member.name,
            object_class=member.object_class,
            membership_type=MembershipType.DIRECT if is_direct else MembershipType.NESTED,
            source_group="" if is_direct else group_name,
            path=() if is_direct else tuple(member_path),
            security_flag=self._security_flag(member, result),
            identifier=member.identifier,
        ))

        if not member.is_group:
            result.graph.declare_node(member.name, NodeCategory.PRINCIPAL)
            result.graph.add_edge(group_name, member.name)
            return None

        result.graph.declare_node(member.name, NodeCategory.INTERMEDIATE_GROUP)
        result.graph.add_edge(group_name, member.name, containment=True)

        # Already expanded in this walk
        if member.identifier.lower() in visited:
            return None

        try:
            return self.directory.resolve_group(member.identifier)
        except DirectoryError as e:
            self._warn(result, f"Could not resolve nested group {member.name}: {e}", member.name)
            return None

    def _security_flag(self, member: Principal, result: TraversalResult) -> str:
        """Security flag value for a member.

        Groups get the NOT_APPLICABLE sentinel. Users and computers get the
        attribute value, or "" when it is absent or cannot be read.
        """
        if member.is_group:
            return NOT_APPLICABLE
        if not member.has_security_flag:
            return ""

        try:
            value = self.directory.get_attribute(member.identifier, self.config.security_attribute)
        except DirectoryError as e:
            self._warn(
                result,
                f"Could not read {self.config.security_attribute} for {member.name}: {e}",
                member.name
            )
            return ""
        return value or ""
