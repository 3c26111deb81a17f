"""Per-request bundle of the read services."""
import asyncio
from dataclasses import dataclass
from typing import Optional

from .backend import BackendClient
from .config import Settings
from .files import RepositoryService
from .policy import PolicyGate
from .pull_requests import PullRequestService
from .work_items import WorkItemService


@dataclass
class Services:
    work_items: WorkItemService
    pull_requests: PullRequestService
    repositories: RepositoryService

    @classmethod
    def build(
        cls,
        backend: BackendClient,
        gate: PolicyGate,
        settings: Settings,
        abort: Optional[asyncio.Event] = None,
    ) -> "Services":
        """Wire all services to one backend, one gate and one abort signal."""
        project = settings.azure_devops_project
        return cls(
            work_items=WorkItemService(backend, gate, abort),
            pull_requests=PullRequestService(backend, project, abort),
            repositories=RepositoryService(backend, project, settings.max_file_size_bytes, abort),
        )
