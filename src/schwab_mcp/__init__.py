"""
schwab_mcp package.

Typed async client for the Schwab brokerage REST API, plus an MCP server
that exposes it. The server entry point is ``schwab_mcp.main``, usable as
a console script target or via ``python -m schwab_mcp``.
"""

from .client import SchwabClient  # noqa: F401
from .errors import SchwabApiError, SchwabAuthError, SchwabDataError, SchwabError  # noqa: F401
from .server import mcp, serve  # noqa: F401

# Import tools module explicitly so its @mcp.tool() decorators are registered.
# This happens after the server (and its `mcp` instance) is fully initialised,
# which avoids circular imports between server and tools.
from . import tools as _tools  # noqa: F401


def main() -> None:
    import asyncio

    asyncio.run(serve())


if __name__ == "__main__":
    main()
