"""MCP tool definitions for Azure DevOps.

This module is the definitive list of tools exposed by the server. Handler
names in handlers.HANDLERS must match the tool names here.
"""

from mcp.types import Tool

_REPOSITORY_ID = {
    "type": "string",
    "description": 'The repository name (e.g., "MyRepo"), GUID, or full path (e.g., "ProjectName/MyRepo"). '
                   "Simple names are automatically prefixed with the configured project."
}

_PULL_REQUEST_ID = {
    "type": "integer",
    "description": "The ID of the pull request"
}

_PR_STATUS = {
    "type": "string",
    "enum": ["active", "completed", "abandoned", "all"],
    "description": 'Filter by PR status. Default is "active".',
    "default": "active"
}

_TOP = {
    "type": "integer",
    "description": "Maximum number of pull requests to return. Default is 100.",
    "default": 100
}

_MAX_DEPTH = {
    "type": "integer",
    "description": "Maximum depth for recursive child fetching (default: 5)",
    "minimum": 0
}


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for Azure DevOps access."""
    return [
        # ============================================================================
        # Work Item Tools
        # ============================================================================
        Tool(
            name="get_work_item",
            description="Retrieves detailed information about an Azure DevOps work item by ID, including title, "
                       "description, state, assignee, dates, and all custom fields. "
                       "Note: work item types configured as GDPR-blocked (Bug by default) cannot be retrieved.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workItemId": {
                        "type": "integer",
                        "description": "The ID of the work item to retrieve"
                    }
                },
                "required": ["workItemId"]
            }
        ),
        Tool(
            name="get_work_item_children",
            description="Retrieves all child work items for a given parent work item ID. "
                       "Recursively fetches children up to a maximum depth (default 5). "
                       "Children that fail to load or are GDPR-blocked are skipped.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workItemId": {
                        "type": "integer",
                        "description": "The ID of the parent work item"
                    },
                    "maxDepth": _MAX_DEPTH
                },
                "required": ["workItemId"]
            }
        ),
        Tool(
            name="get_work_item_commits",
            description="Retrieves all commits associated with a work item, including both directly linked commits "
                       "and commits from associated pull requests. Returns a deduplicated list sorted by date "
                       "(newest first).",
            inputSchema={
                "type": "object",
                "properties": {
                    "workItemId": {
                        "type": "integer",
                        "description": "The ID of the work item"
                    }
                },
                "required": ["workItemId"]
            }
        ),
        Tool(
            name="get_work_item_tree",
            description="Retrieves the hierarchical tree for a work item, including the root item and all "
                       "descendants organized with depth information.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workItemId": {
                        "type": "integer",
                        "description": "The ID of the root work item"
                    },
                    "maxDepth": {**_MAX_DEPTH, "description": "Maximum depth for the tree (default: 5)"}
                },
                "required": ["workItemId"]
            }
        ),
        # ============================================================================
        # Pull Request Tools
        # ============================================================================
        Tool(
            name="get_pull_request",
            description="Retrieves detailed information about a pull request, including title, description, "
                       "source/target branches, status, creator, and dates.",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "pullRequestId": _PULL_REQUEST_ID
                },
                "required": ["repositoryId", "pullRequestId"]
            }
        ),
        Tool(
            name="list_my_pull_requests",
            description="Lists pull requests created by the current user across all repositories in the project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": _PR_STATUS,
                    "top": _TOP
                }
            }
        ),
        Tool(
            name="list_pull_requests_assigned_to_me",
            description="Lists pull requests where the current user is a reviewer across all repositories "
                       "in the project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": _PR_STATUS,
                    "top": _TOP
                }
            }
        ),
        Tool(
            name="list_repository_pull_requests",
            description="Lists pull requests in a specific repository. Can filter by status.",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "status": _PR_STATUS,
                    "top": _TOP
                },
                "required": ["repositoryId"]
            }
        ),
        Tool(
            name="get_pull_request_changes",
            description="Retrieves the file changes in a pull request, including the change type "
                       "(add, edit, delete) and file paths.",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "pullRequestId": _PULL_REQUEST_ID
                },
                "required": ["repositoryId", "pullRequestId"]
            }
        ),
        Tool(
            name="get_pull_request_commits",
            description="Retrieves all commits in a pull request with commit IDs, authors, dates, and messages.",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "pullRequestId": _PULL_REQUEST_ID
                },
                "required": ["repositoryId", "pullRequestId"]
            }
        ),
        # ============================================================================
        # File Tools
        # ============================================================================
        Tool(
            name="get_file_content",
            description="Retrieves the content of a file from a repository. Fetches from the main branch unless "
                       "another branch is given. File size is limited by configuration (default 1MB).",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "filePath": {
                        "type": "string",
                        "description": "The path to the file in the repository (e.g., /src/index.ts)"
                    },
                    "branch": {
                        "type": "string",
                        "description": "The branch name (default: main)"
                    }
                },
                "required": ["repositoryId", "filePath"]
            }
        ),
        Tool(
            name="get_file_from_pr",
            description="Retrieves the content of a file from a pull request's source branch.",
            inputSchema={
                "type": "object",
                "properties": {
                    "repositoryId": _REPOSITORY_ID,
                    "pullRequestId": _PULL_REQUEST_ID,
                    "filePath": {
                        "type": "string",
                        "description": "The path to the file in the repository"
                    }
                },
                "required": ["repositoryId", "pullRequestId", "filePath"]
            }
        ),
    ]
