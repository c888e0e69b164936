"""
Integration Service Dependency.

Provides singleton instances of the source provider and the IntegrationService
for API endpoints.
"""

from typing import Annotated, Optional

from fastapi import Depends

from hivelang_runtime.core.config import settings
from hivelang_runtime.runtime import InMemorySourceProvider, IntegrationService, RuntimeCache
from hivelang_runtime.sandbox import HttpSandbox

_provider: Optional[InMemorySourceProvider] = None
_service: Optional[IntegrationService] = None


def get_source_provider() -> InMemorySourceProvider:
    global _provider
    if _provider is None:
        _provider = InMemorySourceProvider()
    return _provider


def get_integration_service() -> IntegrationService:
    global _service
    if _service is None:
        sandbox_config = settings.sandbox
        cache_config = settings.cache
        _service = IntegrationService(
            get_source_provider(),
            cache=RuntimeCache(max_size=cache_config.capacity, eviction=cache_config.eviction),
            sandbox=HttpSandbox(
                default_timeout_ms=sandbox_config.timeout_ms,
                user_agent=sandbox_config.user_agent,
                allow_loopback_http=sandbox_config.allow_loopback_http,
            ),
            reject_duplicates=settings.reject_duplicate_capabilities,
        )
    return _service


async def shutdown_integration_service() -> None:
    """Close the singleton service and its sandbox client, if one was created."""
    global _service
    if _service is None:
        return
    service, _service = _service, None
    await service.aclose()
    await service.sandbox.aclose()


SourceProviderDep = Annotated[InMemorySourceProvider, Depends(get_source_provider)]
IntegrationServiceDep = Annotated[IntegrationService, Depends(get_integration_service)]
