"""Azure DevOps REST client.

The traversal services only depend on the `BackendClient` protocol; the
`AzureDevOpsClient` below implements it over `httpx.AsyncClient`. Each call
is a single read that either returns a model or raises a DevOpsError.
"""
import logging
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import (
    AuthenticationError,
    BackendError,
    DevOpsError,
    NotFoundError,
    PermissionDeniedError,
)
from .models import CommitRecord, FileChange, FileMetadata, PullRequest, WorkItem
from .repository_ref import GUID_PATTERN, split_repository_ref

logger = logging.getLogger("ado-core.backend")


class BackendClient(Protocol):
    """Read-only operations the services need from the backend."""

    async def fetch_work_item(self, work_item_id: int) -> WorkItem: ...

    async def fetch_commit(self, repository_ref: str, commit_id: str) -> CommitRecord: ...

    async def fetch_pull_request_commits(self, repository_ref: str, pull_request_id: int) -> list[CommitRecord]: ...

    async def fetch_pull_request(self, repository_ref: str, pull_request_id: int) -> PullRequest: ...

    async def fetch_pull_request_changes(
        self, repository_ref: str, pull_request_id: int, iteration: int = 1
    ) -> list[FileChange]: ...

    async def list_pull_requests(
        self,
        repository_ref: Optional[str] = None,
        status: Optional[str] = None,
        creator_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
        top: int = 100,
    ) -> list[PullRequest]: ...

    async def fetch_authenticated_user_id(self) -> Optional[str]: ...

    async def fetch_file_metadata(self, repository_ref: str, path: str, branch: str) -> FileMetadata: ...

    async def fetch_file_content(self, repository_ref: str, path: str, branch: str) -> bytes: ...


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        return payload.get("message")
    return None


class AzureDevOpsClient:
    """BackendClient implementation for the Azure DevOps Services REST API.

    Authenticates with a Personal Access Token (basic auth, empty user name).
    Pass `http_client` to reuse an existing `httpx.AsyncClient`; it must have
    `base_url` set to the organization URL.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self._project = settings.azure_devops_project
        self._api_version = settings.api_version
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.azure_devops_url,
            auth=httpx.BasicAuth("", settings.azure_devops_pat),
            timeout=settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "AzureDevOpsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _params(self, params: Optional[dict[str, Any]] = None, api_version: Optional[str] = None) -> dict[str, Any]:
        merged = {k: v for k, v in (params or {}).items() if v is not None}
        merged["api-version"] = api_version or self._api_version
        return merged

    def _project_path(self) -> str:
        return f"/{quote(self._project, safe='')}"

    def _repository_path(self, repository_ref: str) -> str:
        scope, name = split_repository_ref(repository_ref)
        if scope is None and not GUID_PATTERN.match(name):
            scope = self._project
        prefix = f"/{quote(scope, safe='')}" if scope else ""
        return f"{prefix}/_apis/git/repositories/{quote(name, safe='')}"

    def _translate_status_error(
        self, error: httpx.HTTPStatusError, resource_type: str, resource_id: Any
    ) -> DevOpsError:
        status = error.response.status_code
        message = _error_message(error.response) or f"Azure DevOps request failed ({status})"
        logger.debug(f"HTTP {status} from {error.request.url}: {message}")
        if status == 404:
            return NotFoundError(resource_type, resource_id)
        if status == 401:
            return AuthenticationError()
        if status == 403:
            return PermissionDeniedError(f"{resource_type} {resource_id}")
        return BackendError(message, status=status, url=str(error.request.url))

    async def _get_json(
        self,
        path: str,
        resource_type: str,
        resource_id: Any,
        params: Optional[dict[str, Any]] = None,
        api_version: Optional[str] = None,
    ) -> Any:
        try:
            response = await self._client.get(path, params=self._params(params, api_version))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e, resource_type, resource_id) from None
        except httpx.RequestError as e:
            raise BackendError(f"Connection failed - {e}", url=path) from None

        try:
            return response.json()
        except ValueError:
            raise BackendError(f"Invalid JSON returned for {resource_type} {resource_id}", url=path) from None

    # ------------------------------------------------------------------
    # Work item tracking
    # ------------------------------------------------------------------

    async def fetch_work_item(self, work_item_id: int) -> WorkItem:
        payload = await self._get_json(
            f"{self._project_path()}/_apis/wit/workitems/{work_item_id}",
            "Work item",
            work_item_id,
            params={"$expand": "relations"},
        )
        if not payload:
            raise NotFoundError("Work item", work_item_id)
        return WorkItem.model_validate(payload)

    async def validate_connection(self) -> bool:
        """Check credentials and project access by listing work item types.

        Raises:
            AuthenticationError: If the request fails for any reason
        """
        logger.info("Validating connection...")
        try:
            await self._get_json(
                f"{self._project_path()}/_apis/wit/workitemtypes", "Project", self._project
            )
        except DevOpsError as e:
            logger.error(f"Connection validation failed: {e}")
            raise AuthenticationError(
                "Connection validation failed. Please check your PAT, organization, and project settings. "
                f"Error: {e}"
            ) from None
        logger.info("Connection validation successful")
        return True

    # ------------------------------------------------------------------
    # Git
    # ------------------------------------------------------------------

    async def fetch_commit(self, repository_ref: str, commit_id: str) -> CommitRecord:
        payload = await self._get_json(
            f"{self._repository_path(repository_ref)}/commits/{commit_id}", "Commit", commit_id
        )
        return CommitRecord.from_api(payload, repository_id=repository_ref, commit_id=commit_id)

    async def fetch_pull_request(self, repository_ref: str, pull_request_id: int) -> PullRequest:
        payload = await self._get_json(
            f"{self._repository_path(repository_ref)}/pullrequests/{pull_request_id}",
            "Pull request",
            pull_request_id,
        )
        return PullRequest.from_api(payload, repository_id=repository_ref)

    async def fetch_pull_request_commits(self, repository_ref: str, pull_request_id: int) -> list[CommitRecord]:
        payload = await self._get_json(
            f"{self._repository_path(repository_ref)}/pullRequests/{pull_request_id}/commits",
            "Pull request",
            pull_request_id,
        )
        return [
            CommitRecord.from_api(item, repository_id=repository_ref)
            for item in (payload or {}).get("value", [])
            if item.get("commitId")
        ]

    async def fetch_pull_request_changes(
        self, repository_ref: str, pull_request_id: int, iteration: int = 1
    ) -> list[FileChange]:
        payload = await self._get_json(
            f"{self._repository_path(repository_ref)}/pullRequests/{pull_request_id}"
            f"/iterations/{iteration}/changes",
            "Pull request",
            pull_request_id,
        )
        return [FileChange.from_api(entry) for entry in (payload or {}).get("changeEntries", [])]

    async def list_pull_requests(
        self,
        repository_ref: Optional[str] = None,
        status: Optional[str] = None,
        creator_id: Optional[str] = None,
        reviewer_id: Optional[str] = None,
        top: int = 100,
    ) -> list[PullRequest]:
        if repository_ref:
            path = f"{self._repository_path(repository_ref)}/pullrequests"
        else:
            path = f"{self._project_path()}/_apis/git/pullrequests"
        params = {
            "searchCriteria.status": status,
            "searchCriteria.creatorId": creator_id,
            "searchCriteria.reviewerId": reviewer_id,
            "$top": top,
        }
        payload = await self._get_json(path, "Repository", repository_ref or self._project, params=params)
        return [
            PullRequest.from_api(item, repository_id=repository_ref or "")
            for item in (payload or {}).get("value", [])
        ]

    async def fetch_authenticated_user_id(self) -> Optional[str]:
        payload = await self._get_json(
            "/_apis/connectionData", "Connection", "current", api_version=f"{self._api_version}-preview"
        )
        user = (payload or {}).get("authenticatedUser") or {}
        return user.get("id")

    def _item_params(self, path: str, branch: str, **extra: Any) -> dict[str, Any]:
        return {
            "path": path,
            "versionDescriptor.version": branch,
            "versionDescriptor.versionType": "branch",
            **extra,
        }

    async def fetch_file_metadata(self, repository_ref: str, path: str, branch: str) -> FileMetadata:
        payload = await self._get_json(
            f"{self._repository_path(repository_ref)}/items",
            "File",
            path,
            params=self._item_params(path, branch, includeContentMetadata="true", **{"$format": "json"}),
        )
        if not payload:
            raise NotFoundError("File", path)
        return FileMetadata(
            path=payload.get("path") or path,
            size=payload.get("size"),
            object_id=payload.get("objectId"),
            is_folder=bool(payload.get("isFolder")),
        )

    async def fetch_file_content(self, repository_ref: str, path: str, branch: str) -> bytes:
        url = f"{self._repository_path(repository_ref)}/items"
        params = self._params(self._item_params(path, branch, download="false", **{"$format": "octetStream"}))
        chunks: list[bytes] = []
        try:
            async with self._client.stream(
                "GET", url, params=params, headers={"Accept": "application/octet-stream"}
            ) as response:
                if response.is_error:
                    await response.aread()
                    response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e, "File", path) from None
        except httpx.RequestError as e:
            raise BackendError(f"Connection failed - {e}", url=url) from None
        return b"".join(chunks)
