from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from .base import BaseSchema


class ErrorKind(str, Enum):
    compile_error = "compile_error"
    integration_not_found = "integration_not_found"
    not_found = "not_found"
    context_missing = "context_missing"
    invalid_arguments = "invalid_arguments"
    capability_error = "capability_error"
    execution_error = "execution_error"
    timeout = "timeout"
    transport_policy = "transport_policy"
    network_error = "network_error"


class SourceTestStage(str, Enum):
    compilation = "compilation"
    execution = "execution"
    complete = "complete"


class UserIdentity(BaseSchema):
    """Credentials of the invoking user.

    Extra provider-specific fields (``workspace_id``, ``instance_url``...) are
    kept so capability bodies can read them through ``context.user``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    id: str
    email: Optional[str] = None
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class IntegrationRef(BaseSchema):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    id: str
    name: str
    slug: str


class ExecutionContext(BaseSchema):
    """The ``context`` value a capability body sees for one invocation."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    user: UserIdentity
    integration: IntegrationRef


class IntegrationSource(BaseSchema):
    id: str
    name: str
    slug: str
    source: str


class LoadResult(BaseSchema):
    success: bool
    compiled_capability_names: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    manifest: Dict[str, Any] = Field(default_factory=dict)


class InvocationResult(BaseSchema):
    """Structured outcome of ``IntegrationService.invoke``.

    Exactly one of ``value`` (on success) or ``error_kind``/``message`` (on
    failure) is meaningful.
    """

    success: bool
    value: Any = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    capability: str
    duration_ms: float = 0.0


class SourceTestReport(BaseSchema):
    success: bool
    stage: SourceTestStage
    result: Any = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    compiled_capability_names: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    execution_time_ms: float = 0.0
