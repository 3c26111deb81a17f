"""Shared fixtures: an in-memory backend that records every call."""
from typing import Optional

import pytest

from ado_core.config import Settings
from ado_core.errors import NotFoundError
from ado_core.models import CommitRecord, FileChange, FileMetadata, PullRequest, WorkItem
from ado_core.policy import PolicyGate

ORG_URL = "https://dev.azure.com/contoso"
REPO_GUID = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"
PROJECT_GUID = "11111111-2222-3333-4444-555555555555"


def child_relation(child_id: int) -> dict:
    return {
        "rel": "System.LinkTypes.Hierarchy-Forward",
        "url": f"{ORG_URL}/_apis/wit/workItems/{child_id}",
        "attributes": {"isLocked": False, "name": "Child"},
    }


def commit_relation(repository_id: str, commit_id: str) -> dict:
    return {
        "rel": "ArtifactLink",
        "url": f"vstfs:///Git/Commit/{PROJECT_GUID}%2F{repository_id}%2F{commit_id}",
        "attributes": {"name": "Fixed in Commit"},
    }


def pull_request_relation(repository_id: str, pull_request_id: int) -> dict:
    return {
        "rel": "ArtifactLink",
        "url": f"vstfs:///Git/PullRequestId/{PROJECT_GUID}%2F{repository_id}%2F{pull_request_id}",
        "attributes": {"name": "Pull Request"},
    }


def make_work_item(
    work_item_id: int,
    work_item_type: str = "Task",
    title: Optional[str] = None,
    relations: Optional[list] = None,
    **extra_fields,
) -> dict:
    fields = {
        "System.Id": work_item_id,
        "System.WorkItemType": work_item_type,
        "System.Title": title or f"{work_item_type} {work_item_id}",
        "System.State": "Active",
        "System.AreaPath": "Contoso\\Web",
        "System.IterationPath": "Contoso\\Sprint 1",
        "System.CreatedDate": "2024-01-02T10:00:00Z",
        "System.ChangedDate": "2024-01-03T10:00:00Z",
    }
    fields.update(extra_fields)
    return {"id": work_item_id, "rev": 1, "fields": fields, "relations": relations or []}


def make_commit(commit_id: str, date: Optional[str], author: str = "Ada") -> dict:
    return {
        "commitId": commit_id,
        "author": {"name": author, "email": f"{author.lower()}@contoso.com", "date": date},
        "comment": f"Commit {commit_id[:7]}",
        "remoteUrl": f"{ORG_URL}/_git/web/commit/{commit_id}",
    }


class FakeBackend:
    """BackendClient double backed by dictionaries.

    Keys in `failures` are (method, key) tuples; a matching call raises the
    stored exception instead of returning data.
    """

    def __init__(self):
        self.work_items: dict[int, dict] = {}
        self.commits: dict[tuple[str, str], dict] = {}
        self.pr_commits: dict[tuple[str, int], list[dict]] = {}
        self.pull_requests: dict[tuple[str, int], dict] = {}
        self.pr_changes: dict[tuple[str, int], list[dict]] = {}
        self.files: dict[tuple[str, str, str], tuple[Optional[int], bytes]] = {}
        self.failures: dict[tuple, Exception] = {}
        self.user_id: Optional[str] = "user-1"
        self.listed: list[dict] = []
        self.calls: list[tuple] = []

    def add_work_item(self, *args, **kwargs) -> dict:
        payload = make_work_item(*args, **kwargs)
        self.work_items[payload["id"]] = payload
        return payload

    def calls_to(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    def _record(self, method: str, *key):
        self.calls.append((method, *key))
        failure = self.failures.get((method, key[0] if len(key) == 1 else key))
        if failure is not None:
            raise failure

    async def fetch_work_item(self, work_item_id: int) -> WorkItem:
        self._record("fetch_work_item", work_item_id)
        if work_item_id not in self.work_items:
            raise NotFoundError("Work item", work_item_id)
        return WorkItem.model_validate(self.work_items[work_item_id])

    async def fetch_commit(self, repository_ref: str, commit_id: str) -> CommitRecord:
        self._record("fetch_commit", repository_ref, commit_id)
        if (repository_ref, commit_id) not in self.commits:
            raise NotFoundError("Commit", commit_id)
        return CommitRecord.from_api(self.commits[(repository_ref, commit_id)], repository_id=repository_ref)

    async def fetch_pull_request_commits(self, repository_ref: str, pull_request_id: int) -> list[CommitRecord]:
        self._record("fetch_pull_request_commits", repository_ref, pull_request_id)
        return [
            CommitRecord.from_api(item, repository_id=repository_ref)
            for item in self.pr_commits.get((repository_ref, pull_request_id), [])
        ]

    async def fetch_pull_request(self, repository_ref: str, pull_request_id: int) -> PullRequest:
        self._record("fetch_pull_request", repository_ref, pull_request_id)
        if (repository_ref, pull_request_id) not in self.pull_requests:
            raise NotFoundError("Pull request", pull_request_id)
        return PullRequest.from_api(self.pull_requests[(repository_ref, pull_request_id)], repository_ref)

    async def fetch_pull_request_changes(self, repository_ref: str, pull_request_id: int, iteration: int = 1):
        self._record("fetch_pull_request_changes", repository_ref, pull_request_id)
        return [FileChange.from_api(entry) for entry in self.pr_changes.get((repository_ref, pull_request_id), [])]

    async def list_pull_requests(self, repository_ref=None, status=None, creator_id=None, reviewer_id=None, top=100):
        self.calls.append((
            "list_pull_requests",
            {"repository_ref": repository_ref, "status": status, "creator_id": creator_id,
             "reviewer_id": reviewer_id, "top": top},
        ))
        return [PullRequest.from_api(item, repository_ref or "") for item in self.listed]

    async def fetch_authenticated_user_id(self) -> Optional[str]:
        self._record("fetch_authenticated_user_id", None)
        return self.user_id

    async def fetch_file_metadata(self, repository_ref: str, path: str, branch: str) -> FileMetadata:
        self._record("fetch_file_metadata", repository_ref, path, branch)
        if (repository_ref, path, branch) not in self.files:
            raise NotFoundError("File", path)
        size, _ = self.files[(repository_ref, path, branch)]
        return FileMetadata(path=path, size=size)

    async def fetch_file_content(self, repository_ref: str, path: str, branch: str) -> bytes:
        self._record("fetch_file_content", repository_ref, path, branch)
        return self.files[(repository_ref, path, branch)][1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gate() -> PolicyGate:
    return PolicyGate(["Bug"])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        azure_devops_url=ORG_URL,
        azure_devops_pat="x" * 52,
        azure_devops_project="Contoso",
        gdpr_blocked_work_item_types=["Bug"],
        max_file_size_bytes=1024,
    )
