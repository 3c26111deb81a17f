"""Pydantic models for work items, commits, pull requests and files.

All models are built fresh from backend payloads for the duration of one
call. The `from_api` constructors hold the defaulting rules for the optional
fields Azure DevOps may omit.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


HIERARCHY_FORWARD_REL = "System.LinkTypes.Hierarchy-Forward"
ARTIFACT_LINK_REL = "ArtifactLink"
COMMIT_URN_MARKER = "vstfs:///Git/Commit/"
PULL_REQUEST_URN_MARKER = "vstfs:///Git/PullRequestId/"
BRANCH_REF_PREFIX = "refs/heads/"


class RelationKind(str, enum.Enum):
    """Relation kinds the traversal engine distinguishes."""
    HIERARCHY_CHILD = "hierarchy_child"
    COMMIT_LINK = "commit_link"
    PULL_REQUEST_LINK = "pull_request_link"
    OTHER = "other"


class WorkItemRelation(BaseModel):
    """A typed edge from a work item to another entity."""

    rel: str
    url: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> RelationKind:
        if self.rel == HIERARCHY_FORWARD_REL:
            return RelationKind.HIERARCHY_CHILD
        if self.rel == ARTIFACT_LINK_REL and self.url:
            if COMMIT_URN_MARKER in self.url:
                return RelationKind.COMMIT_LINK
            if PULL_REQUEST_URN_MARKER in self.url:
                return RelationKind.PULL_REQUEST_LINK
        return RelationKind.OTHER


class WorkItem(BaseModel):
    """Work item exactly as returned by the backend.

    `id` and `fields` stay optional here so the PolicyGate can reject a
    malformed payload instead of a validation error masking it.
    """

    id: Optional[int] = None
    rev: Optional[int] = None
    fields: Optional[dict[str, Any]] = None
    relations: list[WorkItemRelation] = Field(default_factory=list)
    url: Optional[str] = None

    @field_validator("relations", mode="before")
    @classmethod
    def _null_relations(cls, value):
        return value or []

    @property
    def work_item_type(self) -> Optional[str]:
        if not self.fields:
            return None
        value = self.fields.get("System.WorkItemType")
        return str(value) if value else None

    def relations_of_kind(self, kind: RelationKind) -> list[WorkItemRelation]:
        """Relations of one kind, in backend order."""
        return [relation for relation in self.relations if relation.kind == kind]


def _identity_name(value: Any) -> Optional[str]:
    # Identity fields come back either as a display string or an identity ref
    if isinstance(value, dict):
        return value.get("displayName") or value.get("uniqueName")
    return value or None


def _parse_tags(value: Any) -> list[str]:
    if not value:
        return []
    return [tag.strip() for tag in str(value).split(";") if tag.strip()]


class WorkItemDetails(BaseModel):
    """Caller-facing view of a work item that passed the PolicyGate."""

    id: int
    title: str = ""
    description: str = ""
    work_item_type: str
    state: str = ""
    assigned_to: Optional[str] = None
    created_date: Optional[datetime] = None
    changed_date: Optional[datetime] = None
    area_path: str = ""
    iteration_path: str = ""
    tags: list[str] = Field(default_factory=list)
    relations: list[WorkItemRelation] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_work_item(cls, work_item: WorkItem) -> "WorkItemDetails":
        fields = work_item.fields or {}
        return cls(
            id=work_item.id,
            title=fields.get("System.Title") or "",
            description=fields.get("System.Description") or "",
            work_item_type=fields.get("System.WorkItemType") or "",
            state=fields.get("System.State") or "",
            assigned_to=_identity_name(fields.get("System.AssignedTo")),
            created_date=fields.get("System.CreatedDate"),
            changed_date=fields.get("System.ChangedDate"),
            area_path=fields.get("System.AreaPath") or "",
            iteration_path=fields.get("System.IterationPath") or "",
            tags=_parse_tags(fields.get("System.Tags")),
            relations=work_item.relations,
            fields=fields,
        )


class WorkItemTree(BaseModel):
    """A work item and its descendants; `depth` counts hierarchy edges from the root."""

    work_item: WorkItemDetails
    children: list["WorkItemTree"] = Field(default_factory=list)
    depth: int = Field(0, ge=0)

    def count(self) -> int:
        """Number of nodes in this subtree, including this one."""
        return 1 + sum(child.count() for child in self.children)


WorkItemTree.model_rebuild()


class CommitRecord(BaseModel):
    """A commit; `commit_id` is the dedup key and is always lowercase hex."""

    commit_id: str = Field(..., min_length=1)
    author: str = "Unknown"
    author_email: str = ""
    date: Optional[datetime] = None
    comment: str = ""
    repository_id: Optional[str] = None
    url: Optional[str] = None

    @field_validator("commit_id")
    @classmethod
    def _lowercase_commit_id(cls, value: str) -> str:
        return value.lower()

    @classmethod
    def from_api(cls, payload: dict, repository_id: Optional[str] = None, commit_id: str = "") -> "CommitRecord":
        author = payload.get("author") or {}
        return cls(
            commit_id=payload.get("commitId") or commit_id,
            author=author.get("name") or "Unknown",
            author_email=author.get("email") or "",
            date=author.get("date"),
            comment=payload.get("comment") or "",
            repository_id=repository_id,
            url=payload.get("remoteUrl") or payload.get("url"),
        )

    def sort_key(self) -> datetime:
        """Date used for newest-first ordering; undated commits sort last."""
        if self.date is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        if self.date.tzinfo is None:
            return self.date.replace(tzinfo=timezone.utc)
        return self.date


class PullRequest(BaseModel):
    pull_request_id: int
    title: str = ""
    description: str = ""
    source_ref_name: str = ""
    target_ref_name: str = ""
    status: str = ""
    created_by: str = "Unknown"
    creation_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    repository_id: str = ""
    url: Optional[str] = None

    @property
    def source_branch(self) -> Optional[str]:
        """Source branch with the `refs/heads/` namespace stripped."""
        if not self.source_ref_name:
            return None
        branch = self.source_ref_name.removeprefix(BRANCH_REF_PREFIX)
        return branch or None

    @classmethod
    def from_api(cls, payload: dict, repository_id: str = "") -> "PullRequest":
        created_by = payload.get("createdBy") or {}
        repository = payload.get("repository") or {}
        return cls(
            pull_request_id=payload["pullRequestId"],
            title=payload.get("title") or "",
            description=payload.get("description") or "",
            source_ref_name=payload.get("sourceRefName") or "",
            target_ref_name=payload.get("targetRefName") or "",
            status=str(payload.get("status") or ""),
            created_by=created_by.get("displayName") or "Unknown",
            creation_date=payload.get("creationDate"),
            closed_date=payload.get("closedDate"),
            repository_id=repository.get("name") or repository_id,
            url=payload.get("url"),
        )


class FileChange(BaseModel):
    change_type: str = "Unknown"
    path: str = ""
    url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: dict) -> "FileChange":
        item = payload.get("item") or {}
        return cls(
            change_type=str(payload.get("changeType") or "Unknown"),
            path=item.get("path") or "",
            url=item.get("url"),
        )


class FileMetadata(BaseModel):
    path: str
    size: Optional[int] = None
    object_id: Optional[str] = None
    is_folder: bool = False


class FileContent(BaseModel):
    path: str
    content: str
    encoding: str = "utf-8"
    size: int
    repository_id: str
    branch: Optional[str] = None
