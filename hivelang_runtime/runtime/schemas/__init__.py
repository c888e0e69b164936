from .base import BaseSchema
from .domain import (
    ErrorKind,
    ExecutionContext,
    IntegrationRef,
    IntegrationSource,
    InvocationResult,
    LoadResult,
    SourceTestReport,
    SourceTestStage,
    UserIdentity,
)

__all__ = [
    "BaseSchema",
    "ErrorKind",
    "ExecutionContext",
    "IntegrationRef",
    "IntegrationSource",
    "InvocationResult",
    "LoadResult",
    "SourceTestReport",
    "SourceTestStage",
    "UserIdentity",
]
