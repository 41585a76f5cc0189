from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActionType(str, Enum):
    """The closed set of actions the copilot may suggest. Never extended at runtime."""

    APPLY_FILTER = "APPLY_FILTER"
    EXPORT_REPORT = "EXPORT_REPORT"
    HIGHLIGHT_METRIC = "HIGHLIGHT_METRIC"


# Unknown keys and type coercion are rejected at every level of the
# model output.
_STRICT = ConfigDict(extra="forbid", strict=True, frozen=True, allow_inf_nan=False)


class Insight(BaseModel):
    model_config = _STRICT

    title: str
    description: str
    severity: Severity


class SuggestedAction(BaseModel):
    model_config = _STRICT

    label: str
    action_type: ActionType = Field(alias="actionType")
    # e.g. {"filterValue": "error"} for APPLY_FILTER
    payload: dict[str, Any]


class StructuredResponse(BaseModel):
    """
    The five-field copilot answer.

    All fields are required; empty lists stand in for "nothing to report".
    Wire names are camelCase, so serialise with ``by_alias=True``.
    """

    model_config = _STRICT

    summary: str
    insights: list[Insight]
    suggested_actions: list[SuggestedAction] = Field(alias="suggestedActions")
    warnings: list[str]
    confidence_score: float = Field(alias="confidenceScore", ge=0.0, le=1.0)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
