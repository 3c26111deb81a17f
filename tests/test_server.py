"""Tests for error translation and deadlines in the MCP server."""
import asyncio

import pytest
from mcp.types import TextContent

from ado_core.errors import BackendError, NotFoundError, PolicyBlockedError
from ado_core.models import PullRequest
from ado_core.services import Services
from ado_mcp import server


@pytest.fixture
def services(backend, gate, settings) -> Services:
    return Services.build(backend, gate, settings)


def handler_raising(error):
    async def handler(arguments, services):
        raise error
    return handler


class TestRunHandler:

    @pytest.mark.asyncio
    async def test_success_passes_through(self, services):
        async def handler(arguments, services):
            return [TextContent(type="text", text="ok")]

        result = await server.run_handler("tool", handler, {}, services)

        assert result[0].text == "ok"

    @pytest.mark.asyncio
    async def test_policy_block_message(self, services):
        result = await server.run_handler("get_work_item", handler_raising(PolicyBlockedError(9, "Bug")), {}, services)

        text = result[0].text
        assert text.startswith("Error: Access to work item #9")
        assert "blocked by GDPR policy" in text

    @pytest.mark.asyncio
    async def test_not_found_message(self, services):
        result = await server.run_handler("get_work_item", handler_raising(NotFoundError("Work item", 9)), {}, services)

        assert result[0].text == "Error: Work item with ID 9 not found."

    @pytest.mark.asyncio
    async def test_backend_error_is_wrapped(self, services):
        result = await server.run_handler("tool", handler_raising(BackendError("upstream down")), {}, services)

        assert result[0].text == "Error: An error occurred: upstream down"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, services):
        result = await server.run_handler("tool", handler_raising(KeyError("workItemId")), {}, services)

        assert result[0].text.startswith("Error: Invalid arguments for tool")

    @pytest.mark.asyncio
    async def test_unexpected_error_has_no_traceback(self, services):
        result = await server.run_handler("tool", handler_raising(RuntimeError("kaboom")), {}, services)

        assert result[0].text == "Error: An error occurred: kaboom"
        assert "Traceback" not in result[0].text

    @pytest.mark.asyncio
    async def test_deadline_sets_abort_and_reports_cancellation(self, services):
        abort = asyncio.Event()

        async def slow(arguments, services):
            await asyncio.sleep(10)
            return [TextContent(type="text", text="too late")]

        result = await server.run_handler("slow_tool", slow, {}, services, deadline_seconds=0.01, abort=abort)

        assert abort.is_set()
        assert result[0].text == "Error: Operation slow_tool was cancelled before it completed."

    @pytest.mark.asyncio
    async def test_unreadable_work_item_is_not_an_argument_error(self, backend, services):
        backend.add_work_item(5, "Task", **{"System.CreatedDate": "yesterday"})

        result = await server.run_handler(
            "get_work_item", server.handlers.HANDLERS["get_work_item"], {"workItemId": 5}, services
        )

        text = result[0].text
        assert text.startswith("Error: Work item #5 has fields that cannot be read")
        assert "Invalid arguments" not in text

    @pytest.mark.asyncio
    async def test_malformed_backend_payload_is_not_an_argument_error(self, services):
        async def handler(arguments, services):
            PullRequest.from_api({"pullRequestId": "not a number"})

        result = await server.run_handler("get_pull_request", handler, {}, services)

        assert result[0].text == "Error: Azure DevOps returned a record that could not be read."

    @pytest.mark.asyncio
    async def test_real_handler_through_server(self, backend, services):
        backend.add_work_item(5, "bug")

        result = await server.run_handler(
            "get_work_item", server.handlers.HANDLERS["get_work_item"], {"workItemId": 5}, services
        )

        assert "#5" in result[0].text
        assert "blocked by GDPR policy" in result[0].text


@pytest.mark.asyncio
async def test_unknown_tool():
    result = await server.call_tool("does_not_exist", {})
    assert result[0].text == "Unknown tool: does_not_exist"


@pytest.mark.asyncio
async def test_list_tools():
    assert len(await server.list_tools()) == 12


def test_policy_gate_built_once(settings, monkeypatch):
    monkeypatch.setattr(server, "_policy_gate", None)

    first = server.get_policy_gate(settings)
    second = server.get_policy_gate()

    assert first is second
    assert first.blocked_types == ["bug"]
