"""Specification document models and derived tool types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ToolNotFoundError


HTTP_METHODS = ("get", "post", "put", "delete", "patch")

SENSITIVE_MARK = "*SENSITIVE*"


class _ExtensionModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="allow", frozen=True, coerce_numbers_to_str=True
    )


class FilterRule(_ExtensionModel):
    path_pattern: Optional[str] = Field(default=None, alias="pathPattern")
    method_pattern: Optional[str] = Field(default=None, alias="methodPattern")
    operation_id_pattern: Optional[str] = Field(default=None, alias="operationIdPattern")
    tags: Optional[List[str]] = None
    exclude: bool = False


class ProxyConfig(_ExtensionModel):
    url: str
    param: str


class TencentCloudAuth(_ExtensionModel):
    """Credentials for TC3-HMAC-SHA256 request signing.

    ``secretId`` and ``secretKey`` are optional here so that a spec with
    incomplete credentials still loads; the signer rejects them at call time.
    """

    secret_id: Optional[str] = Field(default=None, alias="secretId")
    secret_key: Optional[str] = Field(default=None, alias="secretKey")
    token: Optional[str] = None
    service: Optional[str] = None
    region: Optional[str] = None
    version: Optional[str] = None
    action: Optional[str] = None


class AuthConfig(_ExtensionModel):
    tencent_cloud: Optional[TencentCloudAuth] = Field(default=None, alias="TencentCloudAuth")


class RequestConfig(_ExtensionModel):
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    proxy: Optional[ProxyConfig] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    # milliseconds
    timeout: float = 30000
    retries: int = 0
    auth: Optional[AuthConfig] = None


class ResponseConfig(_ExtensionModel):
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    include_response_keys: Optional[List[str]] = Field(default=None, alias="includeResponseKeys")
    exclude_response_keys: Optional[List[str]] = Field(default=None, alias="excludeResponseKeys")
    sensitive_response_fields: Optional[List[str]] = Field(
        default=None, alias="sensitiveResponseFields"
    )


class Operation(_ExtensionModel):
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    parameters: List[Dict[str, Any]] = Field(default_factory=list)
    request_body: Optional[Dict[str, Any]] = Field(default=None, alias="requestBody")
    responses: Dict[str, Any] = Field(default_factory=dict)

    examples: Optional[List[str]] = Field(default=None, alias="x-examples")
    remap_path_to_header: Optional[List[str]] = Field(default=None, alias="x-remap-path-to-header")
    custom_base_url: Optional[str] = Field(default=None, alias="x-custom-base-url")
    sensitive_params: Dict[str, Any] = Field(default_factory=dict, alias="x-sensitive-params")
    sensitive_response_fields: Optional[List[str]] = Field(
        default=None, alias="x-sensitive-response-fields"
    )
    include_response_keys: Optional[List[str]] = Field(
        default=None, alias="x-include-response-keys"
    )
    exclude_response_keys: Optional[List[str]] = Field(
        default=None, alias="x-exclude-response-keys"
    )

    @field_validator("responses", mode="before")
    @classmethod
    def _stringify_status_codes(cls, value: Any) -> Any:
        # YAML reads unquoted status codes as integers
        if isinstance(value, dict):
            return {str(code): response for code, response in value.items()}
        return value


class SpecDocument(_ExtensionModel):
    openapi: Optional[str] = None
    info: Dict[str, Any] = Field(default_factory=dict)
    servers: List[Dict[str, Any]] = Field(default_factory=list)
    paths: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    components: Dict[str, Any] = Field(default_factory=dict)

    filter_rules: Optional[List[FilterRule]] = Field(default=None, alias="x-filter-rules")
    request_config: RequestConfig = Field(default_factory=RequestConfig, alias="x-request-config")
    response_config: ResponseConfig = Field(
        default_factory=ResponseConfig, alias="x-response-config"
    )
    tool_name_format: Optional[str] = Field(default=None, alias="x-tool-name-format")
    tool_name_prefix: Optional[str] = Field(default=None, alias="x-tool-name-prefix")
    tool_name_suffix: Optional[str] = Field(default=None, alias="x-tool-name-suffix")

    def iter_operations(self) -> Iterator[Tuple[str, str, Dict[str, Any], Operation]]:
        """Yield ``(path, method, path_item, operation)`` in document order."""
        for path, path_item in self.paths.items():
            if not isinstance(path_item, dict):
                continue
            for method, raw_operation in path_item.items():
                if method.lower() not in HTTP_METHODS or not isinstance(raw_operation, dict):
                    continue
                yield path, method.lower(), path_item, Operation.model_validate(raw_operation)

    def first_server_url(self) -> Optional[str]:
        if not self.servers:
            return None
        server = self.servers[0]
        if isinstance(server, dict):
            return server.get("url")
        return None

    def has_security_scheme(self, name: str) -> bool:
        schemes = (self.components or {}).get("securitySchemes") or {}
        return bool(schemes.get(name))


@dataclass(frozen=True)
class DeclaredType:
    name: str = "string"


@dataclass(frozen=True)
class RedactedType:
    pass


ParameterType = Union[DeclaredType, RedactedType]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    method: str
    path: str
    input_schema: Dict[str, Any]
    response_schema: Dict[str, Any]
    operation: Operation
    # server-held literal values for parameters published as SENSITIVE_MARK
    sensitive_params: Mapping[str, Any] = field(default_factory=dict)

    def to_tool_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "method": self.method,
            "path": self.path,
        }


@dataclass(frozen=True)
class ToolCatalog:
    tools: List[ToolDescriptor]
    index: Dict[str, ToolDescriptor]

    def get(self, name: str) -> ToolDescriptor:
        tool = self.index.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def __len__(self) -> int:
        return len(self.tools)


@dataclass
class InvocationRequest:
    tool_name: str
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[str]
    # seconds
    timeout: float
    retries: int
    path_params: Dict[str, Any] = field(default_factory=dict)
    input_params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvocationResponse:
    status: int
    status_text: str
    headers: Dict[str, str]
    data: Any
    raw: httpx.Response
