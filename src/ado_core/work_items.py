"""Work item retrieval, hierarchy traversal and commit aggregation.

Hierarchy traversal is depth-first and sequential across siblings: one
child's whole subtree is fetched before the next sibling. A failure below
the root (fetch error, policy block, malformed record) is logged and only
that child's subtree is dropped. Failures of the root itself propagate.

Commit aggregation scans direct commit links and pull request links
concurrently, then deduplicates by commit id (direct links first) and
orders newest first.
"""
import asyncio
import logging
import re
from typing import Iterable, Optional
from urllib.parse import unquote

from pydantic import ValidationError

from .backend import BackendClient
from .errors import MalformedRecordError, OperationCancelledError, raise_if_aborted
from .models import (
    CommitRecord,
    RelationKind,
    WorkItem,
    WorkItemDetails,
    WorkItemTree,
)
from .policy import PolicyGate

logger = logging.getLogger("ado-core.work_items")

DEFAULT_MAX_DEPTH = 5

_TRAILING_ID = re.compile(r"(\d+)$")
_COMMIT_REFERENCE = re.compile(r"/([^/]+)/([0-9a-f]{40})$", re.IGNORECASE)
_PULL_REQUEST_REFERENCE = re.compile(r"/([^/]+)/(\d+)$")


def parse_child_id(url: Optional[str]) -> Optional[int]:
    """Trailing integer of a hierarchy relation URL, or None."""
    if not url:
        return None
    match = _TRAILING_ID.search(url)
    return int(match.group(1)) if match else None


def parse_commit_reference(url: Optional[str]) -> Optional[tuple[str, str]]:
    """(repository id, commit hash) from a `vstfs:///Git/Commit/...` URN."""
    if not url:
        return None
    match = _COMMIT_REFERENCE.search(unquote(url))
    if not match:
        return None
    return match.group(1), match.group(2).lower()


def parse_pull_request_reference(url: Optional[str]) -> Optional[tuple[str, int]]:
    """(repository id, pull request id) from a `vstfs:///Git/PullRequestId/...` URN."""
    if not url:
        return None
    match = _PULL_REQUEST_REFERENCE.search(unquote(url))
    if not match:
        return None
    return match.group(1), int(match.group(2))


def deduplicate_commits(commits: Iterable[CommitRecord]) -> list[CommitRecord]:
    """Keep the first occurrence of each commit id, preserving order."""
    seen: set[str] = set()
    unique: list[CommitRecord] = []
    for commit in commits:
        if commit.commit_id in seen:
            continue
        seen.add(commit.commit_id)
        unique.append(commit)
    return unique


def sort_commits_newest_first(commits: Iterable[CommitRecord]) -> list[CommitRecord]:
    """Order by date descending; equal dates keep their relative order."""
    return sorted(commits, key=CommitRecord.sort_key, reverse=True)


class WorkItemService:
    """Policy-gated access to work items and everything reachable from them."""

    def __init__(
        self,
        backend: BackendClient,
        gate: PolicyGate,
        abort: Optional[asyncio.Event] = None,
    ):
        self._backend = backend
        self._gate = gate
        self._abort = abort

    async def _fetch_gated(self, work_item_id: int) -> WorkItem:
        raise_if_aborted(self._abort, f"fetch work item #{work_item_id}")
        work_item = await self._backend.fetch_work_item(work_item_id)
        self._gate.validate(work_item)
        return work_item

    @staticmethod
    def _details(work_item: WorkItem) -> WorkItemDetails:
        try:
            return WorkItemDetails.from_work_item(work_item)
        except ValidationError as e:
            raise MalformedRecordError(
                f"Work item #{work_item.id} has fields that cannot be read: {e.error_count()} invalid value(s)",
                work_item.id,
            ) from None

    async def get_work_item(self, work_item_id: int) -> WorkItemDetails:
        """Fetch one work item through the PolicyGate."""
        logger.info(f"Fetching work item #{work_item_id}...")
        work_item = await self._fetch_gated(work_item_id)
        return self._details(work_item)

    # =========================================================================
    # Hierarchy
    # =========================================================================

    @staticmethod
    def _child_ids(work_item: WorkItem) -> list[int]:
        ids = []
        for relation in work_item.relations_of_kind(RelationKind.HIERARCHY_CHILD):
            child_id = parse_child_id(relation.url)
            if child_id is not None:
                ids.append(child_id)
        return ids

    async def _fetch_child(
        self, parent_id: int, child_id: int, ancestors: frozenset
    ) -> Optional[tuple[WorkItem, WorkItemDetails]]:
        """Fetch and read a child through the gate; None means skip this subtree."""
        if child_id in ancestors:
            logger.warning(f"Skipping work item #{child_id} under #{parent_id}: hierarchy cycle detected")
            return None
        try:
            child = await self._fetch_gated(child_id)
            return child, self._details(child)
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Failed to fetch child work item #{child_id} of #{parent_id}: {e}")
            return None

    async def get_child_work_items(
        self,
        parent_id: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        current_depth: int = 0,
    ) -> list[WorkItemDetails]:
        """
        Get all descendants of a work item as a flat pre-order list.

        Args:
            parent_id: Work item whose descendants are returned (not included itself)
            max_depth: Maximum number of hierarchy levels below the parent
            current_depth: Depth of the parent relative to the traversal root

        Returns:
            Descendants in backend relation order, each followed by its own subtree

        Raises:
            DevOpsError: If the parent itself cannot be fetched or is blocked
        """
        if current_depth >= max_depth:
            logger.info(f"Max depth {max_depth} reached for work item #{parent_id}")
            return []

        parent = await self._fetch_gated(parent_id)
        descendants = await self._collect_descendants(
            parent, max_depth, current_depth, frozenset({parent_id})
        )
        logger.info(f"Found {len(descendants)} descendants of work item #{parent_id}")
        return descendants

    async def _collect_descendants(
        self,
        parent: WorkItem,
        max_depth: int,
        current_depth: int,
        ancestors: frozenset,
    ) -> list[WorkItemDetails]:
        if current_depth >= max_depth:
            return []

        descendants: list[WorkItemDetails] = []
        for child_id in self._child_ids(parent):
            fetched = await self._fetch_child(parent.id, child_id, ancestors)
            if fetched is None:
                continue
            child, details = fetched
            descendants.append(details)
            descendants.extend(
                await self._collect_descendants(child, max_depth, current_depth + 1, ancestors | {child_id})
            )
        return descendants

    async def get_work_item_tree(self, root_id: int, max_depth: int = DEFAULT_MAX_DEPTH) -> WorkItemTree:
        """Get a work item and its descendants as a tree; the root has depth 0."""
        root = await self._fetch_gated(root_id)
        root_details = self._details(root)
        children = await self._build_subtrees(root, max_depth, 0, frozenset({root_id}))
        tree = WorkItemTree(work_item=root_details, children=children, depth=0)
        logger.info(f"Built tree for work item #{root_id} with {tree.count()} nodes")
        return tree

    async def _build_subtrees(
        self,
        parent: WorkItem,
        max_depth: int,
        current_depth: int,
        ancestors: frozenset,
    ) -> list[WorkItemTree]:
        if current_depth >= max_depth:
            return []

        subtrees: list[WorkItemTree] = []
        for child_id in self._child_ids(parent):
            fetched = await self._fetch_child(parent.id, child_id, ancestors)
            if fetched is None:
                continue
            child, details = fetched
            grandchildren = await self._build_subtrees(
                child, max_depth, current_depth + 1, ancestors | {child_id}
            )
            subtrees.append(
                WorkItemTree(
                    work_item=details,
                    children=grandchildren,
                    depth=current_depth + 1,
                )
            )
        return subtrees

    # =========================================================================
    # Commits
    # =========================================================================

    async def _collect_linked_commits(self, work_item: WorkItem) -> list[CommitRecord]:
        commits: list[CommitRecord] = []
        for relation in work_item.relations_of_kind(RelationKind.COMMIT_LINK):
            reference = parse_commit_reference(relation.url)
            if reference is None:
                continue
            repository_id, commit_id = reference
            raise_if_aborted(self._abort, f"fetch commit {commit_id}")
            try:
                commit = await self._backend.fetch_commit(repository_id, commit_id)
            except Exception as e:
                logger.warning(f"Failed to fetch commit {commit_id} from repository {repository_id}: {e}")
                continue
            commits.append(commit)
        return commits

    async def _collect_pull_request_commits(self, work_item: WorkItem) -> list[CommitRecord]:
        commits: list[CommitRecord] = []
        for relation in work_item.relations_of_kind(RelationKind.PULL_REQUEST_LINK):
            reference = parse_pull_request_reference(relation.url)
            if reference is None:
                continue
            repository_id, pull_request_id = reference
            raise_if_aborted(self._abort, f"fetch commits of pull request #{pull_request_id}")
            try:
                pr_commits = await self._backend.fetch_pull_request_commits(repository_id, pull_request_id)
            except Exception as e:
                logger.warning(
                    f"Failed to fetch commits of pull request #{pull_request_id} "
                    f"from repository {repository_id}: {e}"
                )
                continue
            commits.extend(pr_commits)
        return commits

    async def get_linked_commits(self, work_item_id: int) -> list[CommitRecord]:
        """Commits linked directly to a work item, in relation order."""
        work_item = await self._fetch_gated(work_item_id)
        return await self._collect_linked_commits(work_item)

    async def get_pull_request_linked_commits(self, work_item_id: int) -> list[CommitRecord]:
        """Commits of every pull request linked to a work item, flattened."""
        work_item = await self._fetch_gated(work_item_id)
        return await self._collect_pull_request_commits(work_item)

    async def get_all_commits(self, work_item_id: int) -> list[CommitRecord]:
        """
        Get every commit associated with a work item.

        Direct commit links and pull request links are scanned concurrently.
        The combined list is deduplicated by commit id (direct links win) and
        ordered newest first.

        Raises:
            DevOpsError: If the work item itself cannot be fetched or is blocked
        """
        work_item = await self._fetch_gated(work_item_id)
        # Both scans run to completion; the first failure is re-raised
        results = await asyncio.gather(
            self._collect_linked_commits(work_item),
            self._collect_pull_request_commits(work_item),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        direct_commits, pr_commits = results
        unique_commits = deduplicate_commits([*direct_commits, *pr_commits])
        logger.info(
            f"Found {len(unique_commits)} unique commits for work item #{work_item_id} "
            f"({len(direct_commits)} direct, {len(pr_commits)} via pull requests)"
        )
        return sort_commits_newest_first(unique_commits)
