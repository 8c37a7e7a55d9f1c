"""Execution of tool calls against the upstream HTTP API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from .auth import SCHEME_NAME, TencentCloudSigner
from .exceptions import ConfigurationError, ToolInvocationError
from .logging import redact_payload, redact_url
from .models import (
    InvocationRequest,
    InvocationResponse,
    Operation,
    RequestConfig,
    SpecDocument,
    ToolDescriptor,
)
from .postprocess import post_process
from .resolver import ValueResolver
from .translator import PATH_PLACEHOLDER

logger = logging.getLogger(__name__)


class Invoker:
    """Builds and sends the HTTP request behind a tool call.

    ``client`` is the fetch capability; when omitted a short-lived
    ``httpx.AsyncClient`` is opened per call. ``sleep`` is awaited between
    retry attempts.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[ValueResolver] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.resolver = resolver or ValueResolver()
        self._sleep = sleep

    async def invoke(
        self,
        spec: SpecDocument,
        tool: ToolDescriptor,
        params: Optional[Mapping[str, Any]] = None,
    ) -> InvocationResponse:
        request = await self.build_request(spec, tool, params)
        response = await self._send(request)
        data = self._parse_body(response)
        return InvocationResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=post_process(spec, tool, data),
            raw=response,
        )

    async def build_request(
        self,
        spec: SpecDocument,
        tool: ToolDescriptor,
        params: Optional[Mapping[str, Any]] = None,
    ) -> InvocationRequest:
        config = spec.request_config
        operation = tool.operation
        params = params or {}

        base_url = operation.custom_base_url or config.base_url or spec.first_server_url()
        method = (tool.method or "").upper()
        if not base_url or not method or not tool.path:
            raise ConfigurationError(
                f"Invalid tool configuration for {tool.name}: "
                "a method, a path and a base URL are required"
            )

        path_params = dict(params.get("pathParams") or {})
        # server-held literals replace whatever the caller sent for these keys
        input_params = {**(params.get("inputParams") or {}), **tool.sensitive_params}

        resolved = await self.resolver.resolve_request_values(
            config.headers, path_params, input_params
        )
        headers = dict(resolved.headers)
        input_params = resolved.input_params
        path = fill_path(tool.path, resolved.path_params)

        url = self._apply_path(httpx.URL(base_url), path, operation, headers)

        body: Optional[str] = None
        if method == "GET":
            for key, value in input_params.items():
                url = url.copy_add_param(key, _query_value(value))
        elif input_params:
            body = json.dumps(input_params, ensure_ascii=False, separators=(",", ":"))
            _set_header(headers, "content-type", "application/json")

        if self._signing_enabled(spec, config):
            headers = self._sign(config, operation, method, path, url, headers, body)

        if config.proxy:
            url = httpx.URL(config.proxy.url).copy_set_param(config.proxy.param, str(url))

        return InvocationRequest(
            tool_name=tool.name,
            method=method,
            url=str(url),
            headers=headers,
            body=body,
            timeout=config.timeout / 1000,
            retries=max(config.retries, 0),
            path_params=resolved.path_params,
            input_params=input_params,
        )

    def _apply_path(
        self, url: httpx.URL, path: str, operation: Operation, headers: Dict[str, str]
    ) -> httpx.URL:
        remap = operation.remap_path_to_header
        if remap is None:
            return url.copy_with(path=path)

        # the remapped path never reaches the URL; the base URL is sent as is
        segments = path.split("/")[1:]
        for header_key in remap:
            value = segments.pop(0) if segments else ""
            if value:
                headers[header_key] = value
        return url

    def _signing_enabled(self, spec: SpecDocument, config: RequestConfig) -> bool:
        return bool(
            spec.has_security_scheme(SCHEME_NAME) and config.auth and config.auth.tencent_cloud
        )

    def _sign(
        self,
        config: RequestConfig,
        operation: Operation,
        method: str,
        path: str,
        url: httpx.URL,
        headers: Dict[str, str],
        body: Optional[str],
    ) -> Dict[str, str]:
        credentials = config.auth.tencent_cloud  # type: ignore[union-attr]
        updates: Dict[str, str] = {}
        if operation.operation_id and not credentials.action:
            updates["action"] = operation.operation_id
        service = _get_header(headers, "x-tc-service")
        if service:
            updates["service"] = service
        if updates:
            credentials = credentials.model_copy(update=updates)
        signer = TencentCloudSigner(credentials)
        return signer.sign(method, path, url.params.multi_items(), headers, body)

    async def _send(self, request: InvocationRequest) -> httpx.Response:
        if self.client is not None:
            return await self._send_with_retries(self.client, request)
        async with httpx.AsyncClient() as client:
            return await self._send_with_retries(client, request)

    async def _send_with_retries(
        self, client: httpx.AsyncClient, request: InvocationRequest
    ) -> httpx.Response:
        logger.debug(
            "Request tool=%s method=%s url=%s headers=%s",
            request.tool_name,
            request.method,
            redact_url(request.url),
            redact_payload(request.headers),
        )
        attempt = 0
        while True:
            try:
                return await client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    content=request.body,
                    timeout=request.timeout,
                )
            except httpx.TransportError as exc:
                message = str(exc) or exc.__class__.__name__
                if attempt >= request.retries:
                    logger.error(
                        "Tool %s failed after %s attempt(s): %s",
                        request.tool_name,
                        attempt + 1,
                        message,
                    )
                    raise ToolInvocationError(request.tool_name, message) from exc
                backoff = 2**attempt
                logger.warning(
                    "HTTP call failed (attempt %s/%s). Retrying in %ss. tool=%s error=%s",
                    attempt + 1,
                    request.retries + 1,
                    backoff,
                    request.tool_name,
                    message,
                )
                await self._sleep(backoff)
                attempt += 1

    def _parse_body(self, response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning("Response declared JSON but could not be decoded")
        return response.text


def fill_path(template: str, path_params: Mapping[str, Any]) -> str:
    def replace(match) -> str:
        name = match.group(1)
        if name in path_params:
            return str(path_params[name])
        return match.group(0)

    return PATH_PLACEHOLDER.sub(replace, template)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _set_header(headers: Dict[str, str], name: str, value: str) -> None:
    for key in [key for key in headers if key.lower() == name]:
        del headers[key]
    headers[name] = value
