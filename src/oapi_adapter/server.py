"""MCP server setup for the OpenAPI adapter."""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .config import Settings
from .models import ToolDescriptor
from .openapi import SpecLoader
from .service import AdapterService
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

HTTP_TRANSPORTS = {"http", "streamable-http", "streamablehttp", "sse"}


async def build_server(
    settings: Settings, registry: Optional[ToolRegistry] = None
) -> tuple[FastMCP, object | None]:
    if registry is None:
        spec_loader = SpecLoader(cache_seconds=settings.spec_cache_seconds)
        registry = ToolRegistry(settings, spec_loader)
    service = AdapterService(settings, registry)

    mcp = FastMCP(settings.service_name, instructions=_instructions())

    catalog = await registry.load()
    for descriptor in catalog.tools:
        register_tool(mcp, service, descriptor)
        logger.info("Registered tool: %s", descriptor.name)

    app = _get_http_app(mcp, settings)
    _attach_auth(app, settings)
    _attach_healthcheck(app)
    return mcp, app


def register_tool(mcp: FastMCP, service: AdapterService, descriptor: ToolDescriptor) -> Tool:
    handler = _tool_handler(service, descriptor)
    tool = Tool.from_function(handler, name=descriptor.name, description=descriptor.description)
    # publish the translated schema instead of the one inferred from the handler
    return mcp.add_tool(tool.model_copy(update={"parameters": descriptor.input_schema}))


def _tool_handler(
    service: AdapterService, descriptor: ToolDescriptor
) -> Callable[..., Awaitable[Dict[str, Any]]]:
    async def handler(
        pathParams: Optional[Dict[str, Any]] = None,
        inputParams: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        arguments = {"pathParams": pathParams or {}, "inputParams": inputParams or {}}
        return await service.execute_tool(descriptor.name, arguments)

    return handler


def _attach_auth(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    if not app:
        logger.warning("FastMCP app not available; auth middleware disabled")
        return
    if not settings.adapter_auth_token:
        return

    async def auth_middleware(request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS":
            return await call_next(request)
        if request.url.path.endswith("/health"):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        token = auth_header.replace("Bearer", "").strip()
        if token == settings.adapter_auth_token:
            return await call_next(request)

        logger.warning("Rejected request with invalid token: %s", request.url.path)
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    app.add_middleware(BaseHTTPMiddleware, dispatch=auth_middleware)


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        return JSONResponse({"status": "ok"})

    app.add_route("/health", healthcheck, methods=["GET"])


def _instructions() -> str:
    return (
        "OpenAPI adapter. Each tool calls one operation of the configured API; "
        "pass URL placeholders in pathParams and query/body fields in inputParams."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport not in HTTP_TRANSPORTS:
        return None
    if transport == "sse":
        app = mcp.http_app(transport="sse")
    else:
        app = mcp.http_app(
            transport="streamable-http", stateless_http=True, json_response=True
        )
    _attach_cors(app)
    return app


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
