"""Tests for the GDPR policy gate."""
import logging

import pytest

from ado_core.errors import MalformedRecordError, PolicyBlockedError, sanitize_error
from ado_core.models import WorkItem
from ado_core.policy import PolicyGate

from conftest import make_work_item


def work_item(work_item_type="Task", **kwargs) -> WorkItem:
    return WorkItem.model_validate(make_work_item(42, work_item_type, **kwargs))


class TestPolicyDecisions:
    """Test block/allow decisions."""

    def test_blocked_type_raises(self):
        gate = PolicyGate(["Bug"])

        with pytest.raises(PolicyBlockedError) as exc_info:
            gate.validate(work_item("Bug"))

        error = exc_info.value
        assert error.work_item_id == 42
        assert error.work_item_type == "Bug"

    @pytest.mark.parametrize("work_item_type", ["bug", "BUG", "Bug", "bUg"])
    def test_block_is_case_insensitive(self, work_item_type):
        gate = PolicyGate(["Bug"])
        with pytest.raises(PolicyBlockedError):
            gate.validate(work_item(work_item_type))

    def test_blocked_types_configured_in_any_case(self):
        gate = PolicyGate(["  INCIDENT ", "customer Request"])
        assert gate.is_blocked("incident")
        assert gate.is_blocked("Customer Request")
        assert gate.blocked_types == ["customer request", "incident"]

    def test_allowed_type_returns_none(self):
        gate = PolicyGate(["Bug"])
        assert gate.validate(work_item("User Story")) is None

    def test_allow_is_idempotent(self):
        gate = PolicyGate(["Bug"])
        item = work_item("Feature")
        for _ in range(3):
            assert gate.validate(item) is None

    def test_empty_block_set_allows_everything(self):
        gate = PolicyGate([])
        assert gate.validate(work_item("Bug")) is None

    def test_blocked_error_does_not_leak_fields(self):
        gate = PolicyGate(["Bug"])
        item = work_item(
            "Bug",
            title="Customer Jane Doe cannot log in",
            **{"System.Description": "jane.doe@example.com reported..."},
        )

        with pytest.raises(PolicyBlockedError) as exc_info:
            gate.validate(item)

        message = sanitize_error(exc_info.value)
        assert "#42" in message
        assert "Jane" not in message
        assert "jane.doe@example.com" not in message
        assert vars(exc_info.value) == {"work_item_id": 42, "work_item_type": "Bug"}


class TestMalformedRecords:
    """Malformed records are contract violations, never policy blocks."""

    def test_missing_id(self):
        gate = PolicyGate(["Bug"])
        with pytest.raises(MalformedRecordError):
            gate.validate(WorkItem(fields={"System.WorkItemType": "Bug"}))

    def test_missing_fields(self):
        gate = PolicyGate(["Bug"])
        with pytest.raises(MalformedRecordError) as exc_info:
            gate.validate(WorkItem(id=7))
        assert exc_info.value.work_item_id == 7

    def test_empty_fields(self):
        gate = PolicyGate(["Bug"])
        with pytest.raises(MalformedRecordError):
            gate.validate(WorkItem(id=7, fields={}))

    def test_missing_type(self):
        gate = PolicyGate(["Bug"])
        with pytest.raises(MalformedRecordError) as exc_info:
            gate.validate(WorkItem(id=7, fields={"System.Title": "No type"}))
        assert not isinstance(exc_info.value, PolicyBlockedError)

    @pytest.mark.parametrize("blank_type", [" ", "\t", "   \n"])
    def test_blank_type(self, blank_type):
        gate = PolicyGate(["Bug"])
        with pytest.raises(MalformedRecordError):
            gate.validate(WorkItem(id=7, fields={"System.WorkItemType": blank_type}))


class TestAuditLog:
    def test_every_decision_is_audited(self, caplog):
        gate = PolicyGate(["Bug"])

        with caplog.at_level(logging.INFO, logger="ado-core.audit"):
            gate.validate(work_item("Task"))
            with pytest.raises(PolicyBlockedError):
                gate.validate(work_item("Bug"))

        audit = [r.getMessage() for r in caplog.records if r.name == "ado-core.audit"]
        assert audit == [
            'Allowed access to work item #42 of type "Task"',
            'Blocked access to work item #42 of type "Bug"',
        ]
