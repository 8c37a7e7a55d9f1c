"""CLI entry point for the OpenAPI adapter."""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from .config import Settings, get_settings
from .exceptions import ConfigurationError
from .logging import configure_logging
from .server import HTTP_TRANSPORTS, build_server

logger = logging.getLogger(__name__)


async def serve(settings: Settings) -> None:
    mcp, app = await build_server(settings)
    transport = settings.adapter_transport.lower()

    if transport not in HTTP_TRANSPORTS:
        await mcp.run_stdio_async()
        return
    if not app:
        raise RuntimeError(f"HTTP app unavailable for transport={transport}")

    logger.info(
        "Serving %s over %s on %s:%s",
        settings.service_name,
        transport,
        settings.adapter_host,
        settings.adapter_port,
    )
    config = uvicorn.Config(
        app,
        host=settings.adapter_host,
        port=settings.adapter_port,
        log_level=settings.adapter_log_level.lower(),
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.adapter_log_level)
    try:
        asyncio.run(serve(settings))
    except ConfigurationError as exc:
        logger.error("Adapter failed to start: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
