"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IntegrationUpsert(BaseModel):
    """
    Schema for registering or replacing an integration source.

    The source is compiled before it is stored; a source that fails to compile
    is rejected and the previously stored one is kept.
    """

    name: str = Field(..., description="Display name of the integration.", examples=["GitHub"])
    slug: str = Field(..., description="URL-safe integration identifier.", examples=["github"])
    source: str = Field(
        ...,
        description="HiveLang source text with one or more @capability definitions.",
        examples=["@capability ping()\nreturn \"pong\"\n"],
    )


class IntegrationResponse(BaseModel):
    """Stored integration with the capabilities its source compiled to."""

    id: str = Field(..., description="Integration identifier.")
    name: str = Field(..., description="Display name of the integration.")
    slug: str = Field(..., description="URL-safe integration identifier.")
    compiled_capability_names: List[str] = Field(default_factory=list, description="Capabilities in source order.")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal load warnings (duplicate names).")


class CompileRequest(BaseModel):
    """Schema for compile-checking a source without storing it."""

    source: str = Field(..., description="HiveLang source text to compile.")


class ExecuteRequest(BaseModel):
    """
    Schema for invoking one capability of a stored integration.

    ``context`` is validated by the runtime, so a missing or malformed context
    is reported as ``context_missing`` in the result rather than as a 422.
    """

    integration_id: str = Field(..., description="Identifier of a stored integration.", examples=["github"])
    capability: str = Field(..., description="Capability name.", examples=["list_repos"])
    params: Any = Field(
        default=None,
        description="Arguments: a list (positional) or an object (by parameter name).",
        examples=[["octocat"], {"owner": "octocat"}],
    )
    context: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Execution context with the invoking user's credentials and the integration reference.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "integration_id": "github",
                "capability": "list_repos",
                "params": ["octocat"],
                "context": {
                    "user": {"id": "user-1", "access_token": "gho_example"},
                    "integration": {"id": "github", "name": "GitHub", "slug": "github"},
                },
            }
        }
    )


class SourceTestRequest(BaseModel):
    """
    Schema for the authoring "test integration" flow.

    The source is compiled and, when ``capability`` is given, that capability
    is run once with ``test_credentials`` as the user identity. Nothing is cached.
    """

    source: str = Field(..., description="HiveLang source text to test.")
    capability: Optional[str] = Field(default=None, description="Capability to run after compiling.")
    params: Any = Field(default=None, description="Arguments for the capability.")
    test_credentials: Dict[str, Any] = Field(
        default_factory=dict,
        description="User credential fields (api_key, access_token...) for the test run.",
        examples=[{"api_key": "sk_test_123"}],
    )
