import anthropic

from insightos.copilot.schema import StructuredResponse

# The trusted base case: shown whenever validation, configuration or the
# provider fails. Never passed back through validation.
FALLBACK_RESPONSE = StructuredResponse(
    summary="Unable to analyze dashboard data at this time.",
    insights=[],
    suggestedActions=[],
    warnings=["AI response validation failed."],
    confidenceScore=0.0,
)


def upstream_failure_status(exc: BaseException) -> int:
    """
    Map a provider failure to the HTTP status returned alongside the fallback.

    Rate limiting gets 429 so callers can back off; any other provider error
    is an opaque upstream failure (502). Anything else is our own bug (500).
    """
    if isinstance(exc, anthropic.RateLimitError):
        return 429
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code == 429:
        return 429
    if isinstance(exc, anthropic.APIError):
        return 502
    return 500
