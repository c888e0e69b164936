"""Pydantic base schema utilities for runtime models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all runtime schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Reject unknown fields so malformed contexts and
      results fail validation instead of being silently accepted.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
