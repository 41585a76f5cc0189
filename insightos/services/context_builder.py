from collections.abc import Mapping, Sequence
from typing import Any, TypedDict

# Keeps token usage predictable and requests small.
MAX_TABLE_ROWS = 20

# Never sent to the model provider. Exact, case-sensitive key match.
SENSITIVE_FIELDS = frozenset(
    {
        "email",
        "password",
        "token",
        "secret",
        "apiKey",
        "ssn",
        "creditCard",
    }
)


class CopilotContext(TypedDict):
    currentPage: str
    visibleMetrics: dict[str, Any] | None
    tableSnapshot: list[dict[str, Any]] | None
    tableSnapshotTruncated: bool


def strip_sensitive_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key not in SENSITIVE_FIELDS}


def sanitize_table_snapshot(rows: Sequence[Mapping[str, Any]]) -> tuple[list[dict[str, Any]], bool]:
    """Cap the rows at MAX_TABLE_ROWS and strip sensitive fields. Returns (rows, truncated)."""
    truncated = len(rows) > MAX_TABLE_ROWS
    kept = rows[:MAX_TABLE_ROWS] if truncated else rows
    return [strip_sensitive_fields(row) for row in kept], truncated


def build_copilot_context(
    current_page: str,
    metrics_summary: Mapping[str, Any] | None = None,
    table_snapshot: Sequence[Mapping[str, Any]] | None = None,
) -> CopilotContext:
    """
    Build the context sent alongside every copilot query.

    Page and metrics pass through unchanged; table rows are truncated and
    stripped of sensitive fields. The input rows are not modified.
    """
    rows = None
    truncated = False
    if table_snapshot:
        rows, truncated = sanitize_table_snapshot(table_snapshot)

    return {
        "currentPage": current_page,
        "visibleMetrics": dict(metrics_summary) if metrics_summary is not None else None,
        "tableSnapshot": rows,
        "tableSnapshotTruncated": truncated,
    }
