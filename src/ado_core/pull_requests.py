"""Pull request retrieval and listing."""
import asyncio
import enum
import logging
from typing import Optional

from .backend import BackendClient
from .errors import BackendError, raise_if_aborted
from .models import CommitRecord, FileChange, PullRequest
from .repository_ref import resolve_repository_id

logger = logging.getLogger("ado-core.pull_requests")

DEFAULT_TOP = 100


class PullRequestStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    ALL = "all"


class PullRequestService:
    def __init__(
        self,
        backend: BackendClient,
        project: str,
        abort: Optional[asyncio.Event] = None,
    ):
        self._backend = backend
        self._project = project
        self._abort = abort

    def _resolve(self, repository_id: str) -> str:
        return resolve_repository_id(repository_id, self._project)

    async def get_pull_request(self, repository_id: str, pull_request_id: int) -> PullRequest:
        resolved_repo_id = self._resolve(repository_id)
        logger.info(f"Fetching PR #{pull_request_id} from repository {resolved_repo_id}...")
        raise_if_aborted(self._abort, f"fetch pull request #{pull_request_id}")
        pull_request = await self._backend.fetch_pull_request(resolved_repo_id, pull_request_id)
        logger.info(f"Retrieved PR #{pull_request_id}: {pull_request.title!r}")
        return pull_request

    async def get_pull_request_changes(self, repository_id: str, pull_request_id: int) -> list[FileChange]:
        """File changes of the first iteration of a pull request."""
        resolved_repo_id = self._resolve(repository_id)
        logger.info(f"Fetching changes for PR #{pull_request_id} from {resolved_repo_id}...")
        raise_if_aborted(self._abort, f"fetch changes of pull request #{pull_request_id}")
        return await self._backend.fetch_pull_request_changes(resolved_repo_id, pull_request_id, 1)

    async def get_pull_request_commits(self, repository_id: str, pull_request_id: int) -> list[CommitRecord]:
        resolved_repo_id = self._resolve(repository_id)
        logger.info(f"Fetching commits for PR #{pull_request_id} from {resolved_repo_id}...")
        raise_if_aborted(self._abort, f"fetch commits of pull request #{pull_request_id}")
        return await self._backend.fetch_pull_request_commits(resolved_repo_id, pull_request_id)

    async def list_pull_requests(
        self,
        repository_id: Optional[str] = None,
        status: PullRequestStatus = PullRequestStatus.ACTIVE,
        creator_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
        top: int = DEFAULT_TOP,
    ) -> list[PullRequest]:
        """
        List pull requests in one repository, or across the project when no
        repository is given.

        Args:
            status: "all" sends no status filter
            top: Maximum number of results, passed through to the backend
        """
        status = PullRequestStatus(status)
        resolved_repo_id = self._resolve(repository_id) if repository_id else None
        scope = f"repository {resolved_repo_id}" if resolved_repo_id else "all repositories in project"
        logger.info(f"Listing pull requests in {scope} with status: {status.value}...")

        raise_if_aborted(self._abort, "list pull requests")
        pull_requests = await self._backend.list_pull_requests(
            resolved_repo_id,
            status=None if status is PullRequestStatus.ALL else status.value,
            creator_id=creator_id,
            reviewer_id=reviewer_id,
            top=top,
        )
        logger.info(f"Found {len(pull_requests)} pull requests")
        return pull_requests

    async def _current_user_id(self) -> str:
        raise_if_aborted(self._abort, "resolve current user")
        user_id = await self._backend.fetch_authenticated_user_id()
        if not user_id:
            raise BackendError("Unable to determine current user ID")
        logger.info(f"Current user ID: {user_id}")
        return user_id

    async def list_my_pull_requests(
        self, status: PullRequestStatus = PullRequestStatus.ACTIVE, top: int = DEFAULT_TOP
    ) -> list[PullRequest]:
        """Pull requests created by the authenticated user."""
        user_id = await self._current_user_id()
        return await self.list_pull_requests(None, status, creator_id=user_id, top=top)

    async def list_pull_requests_assigned_to_me(
        self, status: PullRequestStatus = PullRequestStatus.ACTIVE, top: int = DEFAULT_TOP
    ) -> list[PullRequest]:
        """Pull requests where the authenticated user is a reviewer."""
        user_id = await self._current_user_id()
        return await self.list_pull_requests(None, status, reviewer_id=user_id, top=top)
