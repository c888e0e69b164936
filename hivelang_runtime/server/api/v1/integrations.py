"""
Integration Endpoints.

This module lets the platform register integration sources, compile-check
them, invoke their capabilities on behalf of a user, and run the authoring
"test integration" flow.
"""

from fastapi import APIRouter

from hivelang_runtime.core.logging_config import get_logger
from hivelang_runtime.runtime import (
    IntegrationNotFoundError,
    IntegrationSource,
    InvocationResult,
    LoadResult,
    SourceTestReport,
)
from hivelang_runtime.runtime.service import build_context
from hivelang_runtime.server.schemas import (
    CompileRequest,
    ExecuteRequest,
    IntegrationResponse,
    IntegrationUpsert,
    SourceTestRequest,
)
from hivelang_runtime.server.services.deps import IntegrationServiceDep, SourceProviderDep

router = APIRouter()
logger = get_logger(__name__)

TEST_USER_ID = "test-user"


@router.post(
    "/compile",
    response_model=LoadResult,
    summary="Compile Source",
    description="Compile a HiveLang source without storing it.",
    response_description="Compiled capability names, warnings and the integration manifest.",
    responses={400: {"description": "A capability failed to compile"}},
)
async def compile_source(request: CompileRequest, service: IntegrationServiceDep) -> LoadResult:
    """
    Compile a source.

    Every capability is extracted, transpiled and synthesized. The first
    failure is reported as 400 with the capability name and the message.
    """
    return service.load_source(request.source)


@router.post(
    "/execute",
    response_model=InvocationResult,
    summary="Execute Capability",
    description="Invoke one capability of a stored integration with the caller's execution context.",
    response_description="The structured invocation result.",
)
async def execute_capability(request: ExecuteRequest, service: IntegrationServiceDep) -> InvocationResult:
    """
    Execute a capability.

    Failures (unknown integration or capability, missing context, sandbox
    errors, author-raised errors) are reported in the result with an
    ``error_kind``, never as an HTTP error.
    """
    return await service.invoke(request.integration_id, request.capability, request.params, request.context)


@router.post(
    "/test",
    response_model=SourceTestReport,
    summary="Test Source",
    description="Compile a source and optionally run one capability with test credentials, without caching.",
    response_description="The test report with the stage that failed, if any.",
)
async def test_source(request: SourceTestRequest, service: IntegrationServiceDep) -> SourceTestReport:
    """
    Test an integration source.

    The capability runs with ``test_credentials`` as the user identity and a
    placeholder integration reference.
    """
    context = build_context(
        {"id": TEST_USER_ID, **request.test_credentials},
        {"id": "test", "name": "Test Integration", "slug": "test"},
    )
    return await service.test_source(request.source, request.capability, request.params, context)


@router.put(
    "/{integration_id}",
    response_model=IntegrationResponse,
    summary="Register Integration",
    description="Register or replace the source of an integration. The source must compile.",
    response_description="The stored integration and its compiled capabilities.",
    responses={400: {"description": "A capability failed to compile"}},
)
async def put_integration(
    integration_id: str,
    integration_in: IntegrationUpsert,
    service: IntegrationServiceDep,
    provider: SourceProviderDep,
) -> IntegrationResponse:
    """
    Register an integration.

    The source is compiled first; on success it replaces any stored source
    and the cached runtime of the integration is dropped.
    """
    loaded = service.load_source(integration_in.source)
    await provider.put(
        IntegrationSource(
            id=integration_id,
            name=integration_in.name,
            slug=integration_in.slug,
            source=integration_in.source,
        )
    )
    await service.invalidate(integration_id)
    logger.info(f"Registered integration {integration_id} ({len(loaded.compiled_capability_names)} capabilities)")
    return IntegrationResponse(
        id=integration_id,
        name=integration_in.name,
        slug=integration_in.slug,
        compiled_capability_names=loaded.compiled_capability_names,
        warnings=loaded.warnings,
    )


@router.delete(
    "/{integration_id}/cache",
    summary="Invalidate Cached Runtime",
    description="Drop the compiled runtime of an integration so the next call recompiles its source.",
    response_description="Whether a cached runtime was dropped.",
    responses={404: {"description": "Integration not found"}},
)
async def invalidate_integration(integration_id: str, service: IntegrationServiceDep, provider: SourceProviderDep):
    """
    Invalidate an integration's cached runtime.
    """
    if await provider.get(integration_id) is None:
        raise IntegrationNotFoundError(integration_id)
    removed = await service.invalidate(integration_id)
    return {"integration_id": integration_id, "invalidated": removed}
