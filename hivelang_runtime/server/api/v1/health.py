"""
Health Check Endpoints.

Liveness, version and runtime cache status of the runtime server, used for
monitoring and deployment verification.
"""

from fastapi import APIRouter

from hivelang_runtime.server.core import constant
from hivelang_runtime.server.services.deps import IntegrationServiceDep

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the runtime server.",
    response_description="Status object.",
)
async def health_check():
    return {"status": "ok"}


@router.get(
    "/health/runtime",
    summary="Runtime Cache Status",
    description="Report which integrations currently have a compiled runtime cached.",
    response_description="Cache occupancy, capacity and eviction policy.",
)
async def runtime_status(service: IntegrationServiceDep):
    """
    Runtime cache status.

    ``capacity`` 0 means the cache is unbounded.
    """
    cache = service.cache
    return {
        "cached_integrations": cache.keys(),
        "size": cache.size(),
        "capacity": cache.max_size,
        "eviction": cache.eviction,
    }


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the runtime server.",
    response_description="Version object.",
)
async def version():
    """
    Get API version.

    Returns the runtime version and the version of the request/response schemas.
    """
    return {"version": constant.VERSION, "schema_version": constant.SCHEMA_VERSION}
