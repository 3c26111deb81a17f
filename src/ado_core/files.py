"""Repository file access with a size ceiling.

The size check runs against item metadata before any content is requested,
so an oversized file is never downloaded.
"""
import asyncio
import logging
from typing import Optional

from .backend import BackendClient
from .errors import FileTooLargeError, NotFoundError, raise_if_aborted
from .models import FileContent
from .repository_ref import resolve_repository_id

logger = logging.getLogger("ado-core.files")

DEFAULT_BRANCH = "main"


def normalize_file_path(file_path: str) -> str:
    return file_path if file_path.startswith("/") else f"/{file_path}"


class RepositoryService:
    def __init__(
        self,
        backend: BackendClient,
        project: str,
        max_file_size_bytes: int,
        abort: Optional[asyncio.Event] = None,
    ):
        self._backend = backend
        self._project = project
        self._max_file_size_bytes = max_file_size_bytes
        self._abort = abort

    async def get_file_content(
        self,
        repository_id: str,
        file_path: str,
        branch: str = DEFAULT_BRANCH,
    ) -> FileContent:
        """
        Get the text content of a file at a branch.

        Args:
            repository_id: Bare name, scoped path or GUID of the repository
            file_path: Path inside the repository (leading "/" optional)
            branch: Branch name without the refs/heads/ prefix

        Raises:
            NotFoundError: If the repository, branch or file does not exist
            FileTooLargeError: If the reported size exceeds the ceiling
        """
        resolved_repo_id = resolve_repository_id(repository_id, self._project)
        normalized_path = normalize_file_path(file_path)
        logger.info(f"Fetching file {normalized_path} from {branch} branch in repository {resolved_repo_id}...")

        raise_if_aborted(self._abort, f"fetch metadata of {normalized_path}")
        metadata = await self._backend.fetch_file_metadata(resolved_repo_id, normalized_path, branch)
        if metadata.is_folder:
            raise NotFoundError("File", file_path)

        if metadata.size is not None and metadata.size > self._max_file_size_bytes:
            logger.warning(
                f"Refusing to fetch {normalized_path}: {metadata.size} bytes exceeds "
                f"limit of {self._max_file_size_bytes} bytes"
            )
            raise FileTooLargeError(file_path, metadata.size, self._max_file_size_bytes)

        raise_if_aborted(self._abort, f"fetch content of {normalized_path}")
        raw = await self._backend.fetch_file_content(resolved_repo_id, normalized_path, branch)
        content = raw.decode("utf-8", errors="replace")

        return FileContent(
            path=file_path,
            content=content,
            encoding="utf-8",
            size=metadata.size or len(raw),
            repository_id=repository_id,
            branch=branch,
        )

    async def get_file_from_pull_request(
        self,
        repository_id: str,
        pull_request_id: int,
        file_path: str,
    ) -> FileContent:
        """Get a file as it exists on a pull request's source branch."""
        resolved_repo_id = resolve_repository_id(repository_id, self._project)
        logger.info(f"Fetching file {file_path} from PR #{pull_request_id} in {resolved_repo_id}...")

        raise_if_aborted(self._abort, f"fetch pull request #{pull_request_id}")
        pull_request = await self._backend.fetch_pull_request(resolved_repo_id, pull_request_id)

        source_branch = pull_request.source_branch
        if not source_branch:
            raise NotFoundError("Pull request", pull_request_id)

        return await self.get_file_content(repository_id, file_path, source_branch)
