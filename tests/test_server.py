"""Tests for server assembly."""

from fastmcp import FastMCP

from library_lending.server import create_server
from library_lending.tools import all_tools


class TestCreateServer:
    def test_server_metadata(self, test_config):
        mcp = create_server(test_config)

        assert isinstance(mcp, FastMCP)
        assert mcp.name == "test-library-lending"

    async def test_every_tool_registered(self, test_config):
        mcp = create_server(test_config)

        tools = await mcp.get_tools()

        assert set(tools) == {tool["name"] for tool in all_tools}
        assert {
            "borrow_create",
            "borrow_extend",
            "borrow_return",
            "booking_reserve",
            "booking_collect",
            "booking_cancel",
            "booking_expire_sweep",
        } <= set(tools)

    async def test_resources_registered(self, test_config):
        mcp = create_server(test_config)

        resources = await mcp.get_resources()
        templates = await mcp.get_resource_templates()

        assert any(str(uri).startswith("library://settings") for uri in resources)
        assert "library://books/{book_id}/availability" in templates

    def test_tool_names_unique(self):
        names = [tool["name"] for tool in all_tools]

        assert len(names) == len(set(names))
