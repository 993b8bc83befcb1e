"""
FastMCP MCP server entry point, packaged under schwab_mcp.
"""

import os

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from dotenv import load_dotenv
from loguru import logger
from mcp.server.fastmcp import FastMCP
from starlette.middleware.cors import CORSMiddleware

from schwab_mcp.client import SCHWAB_API_BASE_URL, SchwabClient
from schwab_mcp.services import AccountService, MarketDataService, OrderService

load_dotenv()

SCHWAB_BASE_URL = os.getenv("SCHWAB_API_BASE_URL", SCHWAB_API_BASE_URL)
SCHWAB_HTTP_TIMEOUT = float(os.getenv("SCHWAB_HTTP_TIMEOUT", "30"))
TRANSPORT = os.getenv("TRANSPORT", "stdio")
HTTP_HOST = os.getenv("HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("PORT", "8050"))
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*")


@dataclass
class SchwabContext:
    """
    Lifespan context storing the shared Schwab client.
    """

    client: SchwabClient
    account_service: AccountService = field(init=False)
    market_data_service: MarketDataService = field(init=False)
    order_service: OrderService = field(init=False)

    def __post_init__(self) -> None:
        self.account_service = AccountService(self.client)
        self.market_data_service = MarketDataService(self.client)
        self.order_service = OrderService(self.client)


def create_client() -> SchwabClient:
    """Build a client from the environment (``SCHWAB_ACCESS_TOKEN`` is required)."""
    access_token = os.getenv("SCHWAB_ACCESS_TOKEN", "")
    if not access_token:
        raise ValueError("SCHWAB_ACCESS_TOKEN is not set")
    return SchwabClient(
        access_token,
        base_url=SCHWAB_BASE_URL,
        timeout=SCHWAB_HTTP_TIMEOUT,
    )


@asynccontextmanager
async def schwab_lifespan(server: FastMCP) -> AsyncIterator[SchwabContext]:
    """
    Manages the Schwab client lifecycle.

    Args:
        server: The FastMCP server instance

    Yields:
        SchwabContext: The context containing the Schwab client.
    """
    client = create_client()
    logger.info("Schwab client ready | base_url={base_url}", base_url=SCHWAB_BASE_URL)
    try:
        yield SchwabContext(client=client)
    finally:
        await client.aclose()


# Create an MCP server
mcp = FastMCP(
    name="schwab-mcp",
    lifespan=schwab_lifespan,
)


def cors_origins(raw: str = CORS_ALLOW_ORIGINS) -> list[str]:
    """Split a comma separated origin list; ``*`` allows every origin."""
    if raw.strip() == "*":
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


async def run_http_with_cors() -> None:
    """Serve the streamable HTTP app behind CORS so browser clients pass preflight."""
    import uvicorn

    app = mcp.streamable_http_app()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )
    logger.info("Listening on http://{host}:{port}", host=HTTP_HOST, port=HTTP_PORT)
    server = uvicorn.Server(
        uvicorn.Config(app, host=HTTP_HOST, port=HTTP_PORT, log_level=mcp.settings.log_level.lower())
    )
    await server.serve()


async def serve() -> None:
    """Run the MCP server over the transport named by ``TRANSPORT``."""
    logger.info("Starting schwab-mcp | transport={transport}", transport=TRANSPORT)
    runners = {"http": run_http_with_cors, "stdio": mcp.run_stdio_async}
    runner = runners.get(TRANSPORT)
    if runner is None:
        raise ValueError(f"Unsupported transport: {TRANSPORT}. Use 'http' or 'stdio'.")
    try:
        await runner()
    finally:
        logger.info("Server shutting down")
