"""Shared fixtures for oapi_adapter tests."""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from oapi_adapter.models import SpecDocument


@pytest.fixture
def petstore_spec() -> Dict[str, Any]:
    """Small OpenAPI 3 document covering path, query and body parameters."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Pets", "version": "1.0.0"},
        "servers": [{"url": "https://api.example.com"}],
        "paths": {
            "/pets": {
                "get": {
                    "operationId": "listPets",
                    "summary": "List pets",
                    "tags": ["pets"],
                    "parameters": [
                        {
                            "name": "limit",
                            "in": "query",
                            "required": False,
                            "schema": {"type": "integer"},
                            "description": "Page size",
                        }
                    ],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {
                                "application/json": {
                                    "schema": {"type": "array", "items": {"type": "object"}}
                                }
                            },
                        }
                    },
                },
                "post": {
                    "operationId": "createPet",
                    "description": "Create a pet",
                    "tags": ["pets", "admin"],
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {
                                        "name": {"type": "string"},
                                        "age": {"type": "integer"},
                                    },
                                    "required": ["name"],
                                }
                            }
                        }
                    },
                    "responses": {"201": {"description": "Created"}},
                },
            },
            "/pets/{petId}": {
                "get": {
                    "operationId": "getPet",
                    "tags": ["pets"],
                    "parameters": [
                        {
                            "name": "petId",
                            "in": "path",
                            "required": True,
                            "schema": {"type": "integer"},
                        }
                    ],
                    "responses": {"200": {"description": "OK"}},
                },
                "delete": {
                    "operationId": "deletePet",
                    "tags": ["admin"],
                    "responses": {"204": {"description": "Deleted"}},
                },
            },
            "/internal/health": {
                "get": {
                    "operationId": "health",
                    "tags": ["internal"],
                    "responses": {"200": {"description": "OK"}},
                }
            },
        },
    }


@pytest.fixture
def make_spec() -> Callable[..., SpecDocument]:
    def factory(document: Dict[str, Any] | None = None, **extensions: Any) -> SpecDocument:
        data: Dict[str, Any] = dict(document or {})
        data.setdefault("openapi", "3.0.0")
        data.setdefault("info", {"title": "Test", "version": "1"})
        data.setdefault("paths", {})
        data.update(extensions)
        return SpecDocument.model_validate(data)

    return factory

