import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from insightos.copilot.schema import ActionType, SuggestedAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchContext:
    """One action plus the host controls it may drive."""

    action: SuggestedAction | Mapping[str, Any]
    set_status_filter: Callable[[str], None]
    highlight_metric: Callable[[str], None] | None = None


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    action_type: str
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"success": self.success, "actionType": self.action_type}
        if self.error is not None:
            result["error"] = self.error
        return result


def _fail(action_type: str, error: str) -> DispatchResult:
    logger.warning("Copilot action %s rejected: %s", action_type, error)
    return DispatchResult(success=False, action_type=action_type, error=error)


def _read_action(action: SuggestedAction | Mapping[str, Any]) -> tuple[Any, Any]:
    if isinstance(action, SuggestedAction):
        return action.action_type.value, action.payload
    raw_type = action.get("actionType")
    if isinstance(raw_type, ActionType):
        raw_type = raw_type.value
    return raw_type, action.get("payload", {})


# ---------------------------------------------------------------------------
# Per-action handlers
# ---------------------------------------------------------------------------

def _apply_filter(payload: Mapping[str, Any], ctx: DispatchContext) -> DispatchResult:
    filter_value = payload.get("filterValue")
    if not isinstance(filter_value, str):
        return _fail(
            ActionType.APPLY_FILTER.value,
            'APPLY_FILTER requires a "filterValue" string in the action payload.',
        )
    # The host control owns the whitelist of legal filter values.
    ctx.set_status_filter(filter_value)
    return DispatchResult(success=True, action_type=ActionType.APPLY_FILTER.value)


def _export_report(payload: Mapping[str, Any], ctx: DispatchContext) -> DispatchResult:
    logger.info("Report exported")
    return DispatchResult(success=True, action_type=ActionType.EXPORT_REPORT.value)


def _highlight_metric(payload: Mapping[str, Any], ctx: DispatchContext) -> DispatchResult:
    raw = payload.get("metricKey")
    if not isinstance(raw, str):
        return _fail(
            ActionType.HIGHLIGHT_METRIC.value,
            'HIGHLIGHT_METRIC requires a "metricKey" string in the action payload.',
        )
    metric_key = raw.strip()
    if not metric_key:
        return _fail(
            ActionType.HIGHLIGHT_METRIC.value,
            'HIGHLIGHT_METRIC "metricKey" must be a non-empty string.',
        )
    if ctx.highlight_metric is None:
        return _fail(
            ActionType.HIGHLIGHT_METRIC.value,
            "HIGHLIGHT_METRIC control unavailable: the host did not supply highlight_metric.",
        )
    ctx.highlight_metric(metric_key)
    return DispatchResult(success=True, action_type=ActionType.HIGHLIGHT_METRIC.value)


_HANDLERS: dict[ActionType, Callable[[Mapping[str, Any], DispatchContext], DispatchResult]] = {
    ActionType.APPLY_FILTER: _apply_filter,
    ActionType.EXPORT_REPORT: _export_report,
    ActionType.HIGHLIGHT_METRIC: _highlight_metric,
}

if set(_HANDLERS) != set(ActionType):
    raise RuntimeError(
        f"No dispatch handler for: {sorted(t.value for t in set(ActionType) - set(_HANDLERS))}"
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def dispatch_copilot_action(ctx: DispatchContext) -> DispatchResult:
    """
    Run a copilot-suggested action against the host controls.

    Each action validates its payload before any control is invoked. Unknown
    action types, malformed payloads and failing controls produce a failed
    result; this function never raises.
    """
    if not isinstance(ctx.action, (SuggestedAction, Mapping)):
        return _fail(repr(ctx.action), "Action must be an object.")

    raw_type, payload = _read_action(ctx.action)
    label = raw_type if isinstance(raw_type, str) else repr(raw_type)

    try:
        action_type = ActionType(raw_type)
    except ValueError:
        return _fail(label, f"Unknown action type: {label}")

    if not isinstance(payload, Mapping):
        return _fail(label, f"{label} payload must be an object.")

    try:
        result = _HANDLERS[action_type](payload, ctx)
    except Exception as exc:
        logger.error("Copilot action %s control failed: %s", label, exc)
        return DispatchResult(success=False, action_type=label, error=str(exc) or exc.__class__.__name__)

    if result.success:
        logger.info("Copilot action %s dispatched", label)
    return result
