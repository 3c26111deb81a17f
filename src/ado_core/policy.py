"""GDPR policy gate for work items.

Work item types in the block-set may carry personal data. Every work item
must pass `PolicyGate.validate` before any of its fields are transformed,
returned or used to discover further records. That includes each descendant
found mid-traversal, not only the requested root.
"""
import logging
from typing import Iterable

from .errors import MalformedRecordError, PolicyBlockedError
from .models import WorkItem

logger = logging.getLogger("ado-core.policy")
audit_logger = logging.getLogger("ado-core.audit")


class PolicyGate:
    """Allow/block decision for a single work item.

    The block-set is fixed at construction and only read afterwards, so one
    gate can be shared by concurrent requests.
    """

    def __init__(self, blocked_types: Iterable[str]):
        self._blocked_types = frozenset(
            item.strip().lower() for item in blocked_types if item and item.strip()
        )
        logger.info(f"Initialized with blocked work item types: {', '.join(self.blocked_types) or '(none)'}")

    @property
    def blocked_types(self) -> list[str]:
        return sorted(self._blocked_types)

    def is_blocked(self, work_item_type: str) -> bool:
        """Check a work item type against the block-set (case-insensitive)."""
        return work_item_type.strip().lower() in self._blocked_types

    def validate(self, work_item: WorkItem) -> None:
        """
        Validate that a work item may be exposed.

        Args:
            work_item: Work item as fetched from the backend

        Raises:
            MalformedRecordError: If the work item has no id, no fields or no type
            PolicyBlockedError: If the work item type is in the block-set
        """
        if not work_item.id:
            raise MalformedRecordError("Work item must have an ID")

        if not work_item.fields:
            raise MalformedRecordError("Work item must have fields", work_item.id)

        work_item_type = work_item.work_item_type
        if not work_item_type or not work_item_type.strip():
            raise MalformedRecordError(
                "Work item must have a type (System.WorkItemType field)", work_item.id
            )

        if self.is_blocked(work_item_type):
            audit_logger.info(f'Blocked access to work item #{work_item.id} of type "{work_item_type}"')
            raise PolicyBlockedError(work_item.id, work_item_type)

        audit_logger.info(f'Allowed access to work item #{work_item.id} of type "{work_item_type}"')
