import json
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field, StrictStr, ValidationError

SYSTEM_PROMPT = """You are an AI Copilot embedded inside a SaaS analytics dashboard called insightOS.
You analyze structured dashboard data and provide concise, professional insights.
You must always respond in strict JSON format following the defined schema.
Never include explanations outside JSON.
Never include markdown formatting.
Never execute code.
Never hallucinate unavailable data.

You must respond with a JSON object matching this exact schema:
{
  "summary": "string",
  "insights": [
    { "title": "string", "description": "string", "severity": "low | medium | high" }
  ],
  "suggestedActions": [
    { "label": "string", "actionType": "APPLY_FILTER | EXPORT_REPORT | HIGHLIGHT_METRIC", "payload": {} }
  ],
  "warnings": ["string"],
  "confidenceScore": 0.0
}

Rules:
- No extra fields allowed.
- All fields must exist.
- If empty, return empty arrays.
- confidenceScore must be between 0.0 and 1.0.
- severity must be one of: low, medium, high.
- actionType must be one of: APPLY_FILTER, EXPORT_REPORT, HIGHLIGHT_METRIC.
- APPLY_FILTER payload: {"filterValue": "<status>"}. HIGHLIGHT_METRIC payload: {"metricKey": "<metric label>"}.
- Never invent new action types. If unsure, leave suggestedActions empty."""


class CopilotRequest(BaseModel):
    query: StrictStr = Field(min_length=1)
    context: dict[str, Any]


class RequestDecodeError(Exception):
    """The caller sent a body we refuse to forward to the model."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


def decode_request(raw: bytes | str) -> CopilotRequest:
    """Validate an inbound request body. Raises RequestDecodeError."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise RequestDecodeError("Request body must be valid JSON")

    try:
        return CopilotRequest.model_validate(data)
    except ValidationError as exc:
        details = json.loads(exc.json(include_url=False, include_context=False))
        raise RequestDecodeError("Invalid request body", details)


def build_user_message(query: str, context: dict[str, Any]) -> str:
    """Context first, then the literal query, under separate labels."""
    return "\n".join(
        [
            "Dashboard context:",
            json.dumps(context, indent=2, default=str),
            "",
            "User query:",
            query,
        ]
    )


def build_messages(request: CopilotRequest) -> list[BaseMessage]:
    return [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=build_user_message(request.query, request.context)),
    ]
