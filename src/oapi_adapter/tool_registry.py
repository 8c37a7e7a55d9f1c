"""Tool registry for the OpenAPI adapter."""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import Settings
from .models import SpecDocument, ToolCatalog, ToolDescriptor
from .openapi import SpecLoader
from .translator import ToolTranslator


logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(
        self,
        settings: Settings,
        spec_loader: SpecLoader,
        translator: Optional[ToolTranslator] = None,
    ) -> None:
        self.settings = settings
        self.spec_loader = spec_loader
        self.translator = translator or ToolTranslator()
        self._spec: Optional[SpecDocument] = None
        self._catalog: Optional[ToolCatalog] = None

    async def load(self) -> ToolCatalog:
        if self._catalog is not None:
            return self._catalog

        spec = await self.spec_loader.load(self.settings)
        return self.register_spec(spec)

    def register_spec(self, spec: SpecDocument) -> ToolCatalog:
        catalog = self.translator.translate(spec)
        self._spec = spec
        self._catalog = catalog
        for tool in catalog.tools:
            logger.debug("Loaded tool: %s (%s %s)", tool.name, tool.method, tool.path)
        return catalog

    @property
    def spec(self) -> SpecDocument:
        if self._spec is None:
            raise RuntimeError("Tool registry has not been loaded")
        return self._spec

    @property
    def catalog(self) -> ToolCatalog:
        if self._catalog is None:
            raise RuntimeError("Tool registry has not been loaded")
        return self._catalog

    def get(self, name: str) -> ToolDescriptor:
        return self.catalog.get(name)

    def list_tools(self) -> List[ToolDescriptor]:
        return list(self.catalog.tools)
