"""Azure DevOps core - policy-gated access to work items, pull requests and files.

Modules:
- policy: GDPR block-set gate applied to every work item
- repository_ref: repository identifier resolution
- backend: Azure DevOps REST client
- work_items: hierarchy traversal and commit aggregation
- pull_requests: pull request retrieval and listing
- files: file access with a size ceiling
"""

__version__ = "1.0.0"
