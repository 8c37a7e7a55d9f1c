"""OpenAPI operation to tool descriptor translation."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .models import (
    SENSITIVE_MARK,
    DeclaredType,
    Operation,
    ParameterType,
    RedactedType,
    SpecDocument,
    ToolCatalog,
    ToolDescriptor,
)


logger = logging.getLogger(__name__)

PATH_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_NAME_PLACEHOLDER = re.compile(r"\{(method|path|operationId)\}")
_INPUT_LOCATIONS = {"query", "body", "formData"}


class ToolTranslator:
    def translate(self, spec: SpecDocument) -> ToolCatalog:
        tools: List[ToolDescriptor] = []
        for path, method, path_item, operation in spec.iter_operations():
            shared_parameters = path_item.get("parameters") or []
            tools.append(self._build_tool(spec, path, method, operation, shared_parameters))

        tools = self._ensure_unique_names(tools)
        logger.info("Translated %s operation(s) into tools", len(tools))
        return ToolCatalog(tools=tools, index={tool.name: tool for tool in tools})

    def _build_tool(
        self,
        spec: SpecDocument,
        path: str,
        method: str,
        operation: Operation,
        shared_parameters: List[Dict[str, Any]],
    ) -> ToolDescriptor:
        name = self._format_tool_name(spec, method, path, operation)

        path_schema = self._empty_object(
            "URL path parameters that will be replaced in the request endpoint."
        )
        input_schema = self._empty_object("Input parameters for the request.")
        required: List[str] = []

        for param_name in extract_path_parameters(path):
            path_schema["properties"][param_name] = {
                "type": "string",
                "description": f"URL path parameter: {param_name}",
            }
            _append_unique(path_schema["required"], param_name)
            _append_unique(required, "pathParams")

        for parameter in [*shared_parameters, *operation.parameters]:
            if not isinstance(parameter, dict) or parameter.get("in") not in _INPUT_LOCATIONS:
                continue
            param_name = parameter.get("name")
            if not param_name:
                continue
            param_type = self._parameter_type(parameter, operation)
            input_schema["properties"][param_name] = self._parameter_schema(
                param_type, parameter.get("description") or ""
            )
            if parameter.get("required"):
                _append_unique(input_schema["required"], param_name)
                _append_unique(required, "inputParams")

        body_schema = self._extract_body_schema(operation.request_body or {})
        if body_schema:
            for prop_name, prop_schema in (body_schema.get("properties") or {}).items():
                if prop_name in operation.sensitive_params:
                    description = (prop_schema or {}).get("description") or ""
                    prop_schema = self._parameter_schema(RedactedType(), description)
                input_schema["properties"][prop_name] = prop_schema
            body_required = body_schema.get("required")
            if isinstance(body_required, list) and body_required:
                for prop_name in body_required:
                    _append_unique(input_schema["required"], prop_name)
                _append_unique(required, "inputParams")

        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {"pathParams": path_schema, "inputParams": input_schema},
        }
        if required:
            schema["required"] = required

        return ToolDescriptor(
            name=name,
            description=self._describe(name, method, path, operation),
            method=method.upper(),
            path=path,
            input_schema=schema,
            response_schema=self._extract_response_schemas(operation),
            operation=operation,
            sensitive_params=dict(operation.sensitive_params),
        )

    def _format_tool_name(
        self, spec: SpecDocument, method: str, path: str, operation: Operation
    ) -> str:
        template = spec.tool_name_format
        if not template:
            return f"{method}::{path}"
        values = {"method": method, "path": path, "operationId": operation.operation_id or ""}
        formatted = _NAME_PLACEHOLDER.sub(lambda match: values[match.group(1)], template)
        return f"{spec.tool_name_prefix or ''}{formatted}{spec.tool_name_suffix or ''}"

    def _describe(self, name: str, method: str, path: str, operation: Operation) -> str:
        summary = operation.description or operation.summary or f"{method.upper()} {path}"
        tags = f"Categories: {', '.join(operation.tags)}." if operation.tags else ""
        examples = "\n".join(operation.examples or [])
        lines = [f"Call this tool for {summary}", f"- Action: call API {name}", tags, examples]
        return "\n".join(lines).strip()

    def _parameter_type(self, parameter: Dict[str, Any], operation: Operation) -> ParameterType:
        if parameter.get("name") in operation.sensitive_params:
            return RedactedType()
        schema = parameter.get("schema")
        if isinstance(schema, dict):
            return DeclaredType(schema.get("type") or "string")
        return DeclaredType(parameter.get("type") or "string")

    def _parameter_schema(self, param_type: ParameterType, description: str) -> Dict[str, Any]:
        if isinstance(param_type, RedactedType):
            return {"const": SENSITIVE_MARK, "description": description}
        return {"type": param_type.name, "description": description}

    def _extract_body_schema(self, request_body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        content = request_body.get("content") or {}
        json_body = content.get("application/json") or {}
        return json_body.get("schema")

    def _extract_response_schemas(self, operation: Operation) -> Dict[str, Any]:
        schemas: Dict[str, Any] = {}
        for code, response in operation.responses.items():
            if not isinstance(response, dict):
                continue
            content = response.get("content") or {}
            schema = (content.get("application/json") or {}).get("schema") or (
                content.get("*/*") or {}
            ).get("schema")
            if not schema:
                # Swagger 2.0
                schema = response.get("schema")
            if schema:
                schemas[str(code)] = schema
        return schemas

    def _ensure_unique_names(self, tools: List[ToolDescriptor]) -> List[ToolDescriptor]:
        seen: set[str] = set()
        unique: List[ToolDescriptor] = []
        for tool in tools:
            if tool.name in seen:
                renamed = f"{tool.name} [{tool.method.upper()}]"
                logger.debug("Tool name collision: %s renamed to %s", tool.name, renamed)
                tool = replace(tool, name=renamed)
            else:
                seen.add(tool.name)
            unique.append(tool)
        return unique

    def _empty_object(self, description: str) -> Dict[str, Any]:
        return {"type": "object", "description": description, "properties": {}, "required": []}


def extract_path_parameters(path: str) -> List[str]:
    return PATH_PLACEHOLDER.findall(path)


def translate(spec: SpecDocument) -> ToolCatalog:
    return ToolTranslator().translate(spec)


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)
