import logging
import re
from dataclasses import dataclass, field

from pydantic import ValidationError

from insightos.copilot.schema import StructuredResponse

logger = logging.getLogger(__name__)

# A whole reply wrapped in one ``` or ```json fence.
_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one model turn: a typed response or the violations."""

    response: StructuredResponse | None = None
    violations: list[dict] = field(default_factory=list)
    repaired: bool = False

    @property
    def ok(self) -> bool:
        return self.response is not None


def validate_structured_response(text: str) -> ValidationResult:
    """Parse ``text`` as JSON and check it against the strict response schema."""
    try:
        response = StructuredResponse.model_validate_json(text)
    except ValidationError as exc:
        return ValidationResult(violations=exc.errors(include_url=False, include_context=False))
    return ValidationResult(response=response)


def extract_json(raw: str) -> str:
    """
    Recover the JSON object from a reply the model wrapped in a markdown fence
    or surrounded with commentary.

    Strips one outer fence, then slices from the first "{" to the last "}".
    """
    trimmed = raw.strip()

    fence = _FENCE_RE.match(trimmed)
    if fence and fence.group(1):
        trimmed = fence.group(1).strip()

    first_brace = trimmed.find("{")
    last_brace = trimmed.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        trimmed = trimmed[first_brace:last_brace + 1]

    return trimmed


def parse_and_validate(raw: str) -> ValidationResult:
    """
    Turn the accumulated text of one model turn into a StructuredResponse.

    1. Validate the text as-is.
    2. Otherwise run exactly one repair pass (extract_json) and validate again.
    3. Otherwise fail; the caller substitutes the fallback response.
    """
    direct = validate_structured_response(raw)
    if direct.ok:
        return direct

    repaired = validate_structured_response(extract_json(raw))
    if repaired.ok:
        logger.info("Model output recovered by repair pass")
        return ValidationResult(response=repaired.response, repaired=True)

    return ValidationResult(violations=repaired.violations, repaired=True)
