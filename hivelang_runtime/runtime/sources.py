from __future__ import annotations

"""Integration source provider contracts.

The service depends on this Protocol instead of a concrete store: integration
sources live in whatever persistence the host platform uses.

Contract guidelines
-------------------

- All methods are async.
- ``get`` returns ``None`` for an unknown id instead of raising.
"""

import asyncio
from typing import Dict, List, Optional, Protocol

from .schemas.domain import IntegrationSource


class IntegrationSourceProvider(Protocol):
    """Look up the HiveLang source of an integration."""

    async def get(self, integration_id: str) -> Optional[IntegrationSource]:
        """
        Fetch an integration by id.

        Args:
            integration_id: The integration identifier.

        Returns:
            The integration with its source, or None if unknown.
        """
        ...


class InMemorySourceProvider:
    """Dict-backed provider for development, the bundled server and tests."""

    def __init__(self, sources: Optional[List[IntegrationSource]] = None) -> None:
        self._sources: Dict[str, IntegrationSource] = {s.id: s for s in sources or []}
        self._lock = asyncio.Lock()

    async def get(self, integration_id: str) -> Optional[IntegrationSource]:
        async with self._lock:
            return self._sources.get(integration_id)

    async def put(self, source: IntegrationSource) -> None:
        async with self._lock:
            self._sources[source.id] = source

    async def delete(self, integration_id: str) -> bool:
        async with self._lock:
            return self._sources.pop(integration_id, None) is not None

    async def list_ids(self) -> List[str]:
        async with self._lock:
            return sorted(self._sources)
