"""Shared formatting functions for MCP responses."""
from datetime import datetime
from typing import Optional

from ado_core.models import (
    CommitRecord,
    FileChange,
    FileContent,
    PullRequest,
    WorkItemDetails,
    WorkItemTree,
)

# Fields already rendered in the header of format_work_item
_HEADER_FIELDS = {
    "System.Id",
    "System.Title",
    "System.Description",
    "System.WorkItemType",
    "System.State",
    "System.AssignedTo",
    "System.CreatedDate",
    "System.ChangedDate",
    "System.AreaPath",
    "System.IterationPath",
    "System.Tags",
}


def _date(value: Optional[datetime]) -> str:
    return value.isoformat() if value else "unknown"


def format_work_item(wi: WorkItemDetails) -> str:
    """Format a work item for display with full details."""
    assignee_info = f"\nAssigned to: {wi.assigned_to}" if wi.assigned_to else ""
    tags_info = f"\nTags: {', '.join(wi.tags)}" if wi.tags else ""
    desc_info = f"\n\n{wi.description}" if wi.description else ""

    extra_fields = {k: v for k, v in wi.fields.items() if k not in _HEADER_FIELDS}
    fields_info = ""
    if extra_fields:
        lines = "\n".join(f"- {name}: {value}" for name, value in sorted(extra_fields.items()))
        fields_info = f"\n\nFields:\n{lines}"

    relations_info = ""
    if wi.relations:
        lines = "\n".join(f"- {rel.rel}: {rel.url}" for rel in wi.relations)
        relations_info = f"\n\nRelations ({len(wi.relations)}):\n{lines}"

    return f"""#{wi.id} **{wi.title or '(untitled)'}** ({wi.work_item_type})
State: {wi.state or 'unknown'}{assignee_info}
Area: {wi.area_path}
Iteration: {wi.iteration_path}{tags_info}
Created: {_date(wi.created_date)}
Changed: {_date(wi.changed_date)}{desc_info}{fields_info}{relations_info}"""


def format_work_item_summary(wi: WorkItemDetails) -> str:
    """Format a work item as a compact one-liner for list views."""
    return f"#{wi.id} {wi.work_item_type}/{wi.state or 'unknown'}: {wi.title or '(untitled)'}"


def format_work_item_tree(tree: WorkItemTree) -> str:
    """Format a work item tree as an indented outline."""
    lines = [f"{'  ' * tree.depth}- [depth {tree.depth}] {format_work_item_summary(tree.work_item)}"]
    for child in tree.children:
        lines.append(format_work_item_tree(child))
    return "\n".join(lines)


def format_commit(commit: CommitRecord) -> str:
    """Format a commit as a short entry."""
    email_info = f" <{commit.author_email}>" if commit.author_email else ""
    repo_info = f"\n  Repository: {commit.repository_id}" if commit.repository_id else ""
    url_info = f"\n  URL: {commit.url}" if commit.url else ""
    message = commit.comment.strip().splitlines()[0] if commit.comment.strip() else "(no message)"
    return (f"- {commit.commit_id[:8]} {message}\n"
            f"  Author: {commit.author}{email_info}\n"
            f"  Date: {_date(commit.date)}{repo_info}{url_info}")


def format_pull_request(pr: PullRequest) -> str:
    """Format a pull request for display with full details."""
    closed_info = f"\nClosed: {_date(pr.closed_date)}" if pr.closed_date else ""
    url_info = f"\nURL: {pr.url}" if pr.url else ""
    desc_info = f"\n\n{pr.description}" if pr.description else ""

    return f"""PR #{pr.pull_request_id} **{pr.title or '(untitled)'}**
Repository: {pr.repository_id}
Status: {pr.status or 'unknown'}
Source: {pr.source_ref_name}
Target: {pr.target_ref_name}
Created by: {pr.created_by}
Created: {_date(pr.creation_date)}{closed_info}{url_info}{desc_info}"""


def format_pull_request_summary(pr: PullRequest) -> str:
    """Format a pull request as a compact one-liner for list views."""
    branch = pr.source_branch or "?"
    return f"PR #{pr.pull_request_id} [{pr.status or 'unknown'}] {pr.repository_id}: {pr.title} ({branch} by {pr.created_by})"


def format_file_change(change: FileChange) -> str:
    return f"- {change.change_type}: {change.path}"


def format_file_content(file: FileContent) -> str:
    """Format file content with a short metadata header."""
    branch_info = f" @ {file.branch}" if file.branch else ""
    return (f"File: {file.path}{branch_info}\n"
            f"Repository: {file.repository_id}\n"
            f"Size: {file.size} bytes ({file.encoding})\n\n"
            f"{file.content}")
