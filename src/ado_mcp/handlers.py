"""MCP tool handlers.

All handlers follow a consistent pattern:
- Accept: arguments dict and the per-request Services bundle
- Return: list[TextContent] built with the formatters module
- Let DevOpsError propagate; the server turns it into a caller-visible message
"""
import logging

from mcp.types import TextContent

from ado_core.pull_requests import DEFAULT_TOP
from ado_core.services import Services
from ado_core.work_items import DEFAULT_MAX_DEPTH

from . import formatters

logger = logging.getLogger("ado-mcp.handlers")


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


# ============================================================================
# Work Item Handlers
# ============================================================================

async def handle_get_work_item(arguments: dict, services: Services) -> list[TextContent]:
    """Get one work item (GDPR-gated)."""
    work_item_id = int(arguments["workItemId"])
    result = await services.work_items.get_work_item(work_item_id)
    logger.info(f"Successfully retrieved work item #{work_item_id}: {result.title}")
    return _text(formatters.format_work_item(result))


async def handle_get_work_item_children(arguments: dict, services: Services) -> list[TextContent]:
    """Get all descendants of a work item as a flat list.

    COMMON PATTERNS:
    • Explore hierarchy: get_work_item_children(epic_id) → features and stories
    • Shallow look: get_work_item_children(id, maxDepth=1) → direct children only
    """
    work_item_id = int(arguments["workItemId"])
    max_depth = int(arguments.get("maxDepth", DEFAULT_MAX_DEPTH))
    result = await services.work_items.get_child_work_items(work_item_id, max_depth)

    if not result:
        logger.info(f"No children found for work item #{work_item_id}")
        return _text("No children found for this work item.")

    children_text = "\n".join(formatters.format_work_item_summary(item) for item in result)
    return _text(f"Children of #{work_item_id} ({len(result)}):\n{children_text}")


async def handle_get_work_item_commits(arguments: dict, services: Services) -> list[TextContent]:
    """Get all commits of a work item (direct and via pull requests), newest first."""
    work_item_id = int(arguments["workItemId"])
    result = await services.work_items.get_all_commits(work_item_id)

    if not result:
        return _text(f"No commits found for work item #{work_item_id}.")

    commits_text = "\n".join(formatters.format_commit(commit) for commit in result)
    return _text(f"Commits for work item #{work_item_id} ({len(result)}):\n{commits_text}")


async def handle_get_work_item_tree(arguments: dict, services: Services) -> list[TextContent]:
    """Get a work item with its descendants as a tree."""
    work_item_id = int(arguments["workItemId"])
    max_depth = int(arguments.get("maxDepth", DEFAULT_MAX_DEPTH))
    tree = await services.work_items.get_work_item_tree(work_item_id, max_depth)
    logger.info(f"Successfully built tree for work item #{work_item_id} ({tree.count()} nodes)")

    return _text(f"Work item tree for #{work_item_id} ({tree.count()} items, max depth {max_depth}):\n"
                 f"{formatters.format_work_item_tree(tree)}")


# ============================================================================
# Pull Request Handlers
# ============================================================================

async def handle_get_pull_request(arguments: dict, services: Services) -> list[TextContent]:
    repository_id = arguments["repositoryId"]
    pull_request_id = int(arguments["pullRequestId"])
    result = await services.pull_requests.get_pull_request(repository_id, pull_request_id)
    return _text(formatters.format_pull_request(result))


def _pull_request_list(result: list, heading: str) -> list[TextContent]:
    if not result:
        return _text(f"No pull requests found ({heading}).")
    items_text = "\n".join(formatters.format_pull_request_summary(pr) for pr in result)
    return _text(f"Found {len(result)} pull requests ({heading}):\n\n{items_text}")


async def handle_list_my_pull_requests(arguments: dict, services: Services) -> list[TextContent]:
    status = arguments.get("status", "active")
    top = int(arguments.get("top", DEFAULT_TOP))
    result = await services.pull_requests.list_my_pull_requests(status, top)
    return _pull_request_list(result, f"created by me, status: {status}")


async def handle_list_pull_requests_assigned_to_me(arguments: dict, services: Services) -> list[TextContent]:
    status = arguments.get("status", "active")
    top = int(arguments.get("top", DEFAULT_TOP))
    result = await services.pull_requests.list_pull_requests_assigned_to_me(status, top)
    return _pull_request_list(result, f"assigned to me, status: {status}")


async def handle_list_repository_pull_requests(arguments: dict, services: Services) -> list[TextContent]:
    repository_id = arguments["repositoryId"]
    status = arguments.get("status", "active")
    top = int(arguments.get("top", DEFAULT_TOP))
    result = await services.pull_requests.list_pull_requests(repository_id, status, top=top)
    return _pull_request_list(result, f"{repository_id}, status: {status}")


async def handle_get_pull_request_changes(arguments: dict, services: Services) -> list[TextContent]:
    repository_id = arguments["repositoryId"]
    pull_request_id = int(arguments["pullRequestId"])
    result = await services.pull_requests.get_pull_request_changes(repository_id, pull_request_id)

    if not result:
        return _text(f"No changes found for PR #{pull_request_id}.")

    changes_text = "\n".join(formatters.format_file_change(change) for change in result)
    return _text(f"Changes in PR #{pull_request_id} ({len(result)}):\n{changes_text}")


async def handle_get_pull_request_commits(arguments: dict, services: Services) -> list[TextContent]:
    repository_id = arguments["repositoryId"]
    pull_request_id = int(arguments["pullRequestId"])
    result = await services.pull_requests.get_pull_request_commits(repository_id, pull_request_id)

    if not result:
        return _text(f"No commits found for PR #{pull_request_id}.")

    commits_text = "\n".join(formatters.format_commit(commit) for commit in result)
    return _text(f"Commits in PR #{pull_request_id} ({len(result)}):\n{commits_text}")


# ============================================================================
# File Handlers
# ============================================================================

async def handle_get_file_content(arguments: dict, services: Services) -> list[TextContent]:
    """Get a file from a branch (default: main), subject to the size limit."""
    result = await services.repositories.get_file_content(
        arguments["repositoryId"],
        arguments["filePath"],
        arguments.get("branch") or "main",
    )
    logger.info(f"Successfully retrieved {result.path} ({result.size} bytes)")
    return _text(formatters.format_file_content(result))


async def handle_get_file_from_pr(arguments: dict, services: Services) -> list[TextContent]:
    """Get a file from a pull request's source branch."""
    result = await services.repositories.get_file_from_pull_request(
        arguments["repositoryId"],
        int(arguments["pullRequestId"]),
        arguments["filePath"],
    )
    logger.info(f"Successfully retrieved {result.path} from branch {result.branch}")
    return _text(formatters.format_file_content(result))


HANDLERS = {
    # Work items
    "get_work_item": handle_get_work_item,
    "get_work_item_children": handle_get_work_item_children,
    "get_work_item_commits": handle_get_work_item_commits,
    "get_work_item_tree": handle_get_work_item_tree,
    # Pull requests
    "get_pull_request": handle_get_pull_request,
    "list_my_pull_requests": handle_list_my_pull_requests,
    "list_pull_requests_assigned_to_me": handle_list_pull_requests_assigned_to_me,
    "list_repository_pull_requests": handle_list_repository_pull_requests,
    "get_pull_request_changes": handle_get_pull_request_changes,
    "get_pull_request_commits": handle_get_pull_request_commits,
    # Files
    "get_file_content": handle_get_file_content,
    "get_file_from_pr": handle_get_file_from_pr,
}
