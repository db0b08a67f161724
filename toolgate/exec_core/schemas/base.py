"""Pydantic base schema utilities for execution core models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )


class ExternalSchema(BaseModel):
    """
    Base model for payloads produced by upstream collaborators (planners, graph producers).

    Unknown keys are ignored rather than rejected so that newer producers keep
    working against an older core.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )
