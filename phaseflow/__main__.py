# phaseflow/__main__.py
"""
Entry point for the phaseflow MCP server.

CRITICAL: Server imports configure_logging() first to prevent stdout pollution.
"""

import logging

# Import server (which configures logging before anything else)
from phaseflow.server import mcp

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the MCP server on the stdio transport."""
    logger.info("Starting MCP server on stdio transport")
    mcp.run()


if __name__ == "__main__":
    main()
