"""Library Lending MCP Server - FastMCP Implementation

Exposes the lending core over MCP.

Features exposed:
- Resources: Book availability, lending settings
- Tools: Borrow, extend, return, approve/reject, book, collect, cancel,
  expiry sweep, inventory and settings administration
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import LendingConfig, get_config
from .database.session import get_db_manager
from .observability import initialize_observability
from .observability.decorators import trace_tool
from .resources import all_resources
from .tools import all_tools

logger = logging.getLogger(__name__)

# FastMCP spells the HTTP transport with a hyphen
_TRANSPORTS = {"stdio": "stdio", "streamable_http": "streamable-http"}


def configure_logging(config: LendingConfig) -> None:
    """Send logs to stderr; stdout carries the MCP protocol on stdio."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.is_development:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)


def create_server(config: LendingConfig | None = None) -> FastMCP:
    """Build the FastMCP server with every resource and tool registered."""
    config = config or get_config()

    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=(
            "Library lending service. Borrow available copies, book copies that are "
            "out on loan, collect them when they come back, and return them. Every "
            "tool takes the caller's actor_id and actor_role. Read "
            "library://books/{book_id}/availability before borrowing or booking, and "
            "library://settings for the current limits."
        ),
    )

    for resource in all_resources:
        uri = resource.get("uri_template", resource.get("uri"))
        logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
        mcp.resource(
            uri=uri,
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])

    logger.info("Registered %d resources", len(all_resources))

    for tool in all_tools:
        logger.debug("Registering tool: %s", tool["name"])
        mcp.tool(
            name=tool["name"],
            description=tool["description"],
        )(trace_tool(tool["name"])(tool["handler"]))

    logger.info("Registered %d tools", len(all_tools))
    return mcp


def run_server(config: LendingConfig | None = None) -> None:
    """Initialize storage and observability, then serve on the configured transport."""
    config = config or get_config()

    initialize_observability()

    db_manager = get_db_manager()
    db_manager.init_database()
    if not db_manager.verify_connection():
        logger.error("Database is not reachable, refusing to start")
        sys.exit(1)

    mcp = create_server(config)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        db_manager.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    transport = _TRANSPORTS[config.transport]
    logger.info(
        "Starting %s v%s on %s transport", config.server_name, config.server_version, transport
    )
    try:
        if transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(transport=transport, host=config.http_host, port=config.http_port)
    finally:
        db_manager.close()


def main() -> None:
    """Main entry point for the MCP server."""
    config = get_config()
    configure_logging(config)

    try:
        logger.info("=" * 60)
        logger.info("Library Lending MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("Borrow approval required: %s", config.borrow_requires_approval)
        logger.info("=" * 60)

        run_server(config)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
