from __future__ import annotations

from collections.abc import Mapping, Sequence

from ..models.processing_result import ImportResult

"""Summary rendering for import runs.

Two forms:
- render_summary_message: the operator-facing sentence
- render_summary_line: machine-greppable ``SUMMARY key=value ...`` line
"""

__all__ = [
    "render_summary_line",
    "render_summary_message",
]

SNIPPET_COUNT = 3


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def _special_meals_text(counts: Mapping[str, int]) -> str:
    if not counts:
        return ""
    details = ", ".join(f"{count} {label}" for label, count in counts.items())
    return f" (including {details})"


def _skipped_text(skipped: int) -> str:
    if skipped <= 0:
        return ""
    return f" (skipped {_plural(skipped, 'record')})"


def render_summary_message(
    success_count: int,
    error_count: int,
    skipped_count: int,
    special_meal_counts: Mapping[str, int],
    snippets: Sequence[str] = (),
) -> str:
    """Compose the operator summary.

    Examples:
        >>> render_summary_message(3, 0, 1, {"RV meals": 10})
        'Successfully imported 3 attendance records (including 10 RV meals) (skipped 1 record)'
    """
    special = _special_meals_text(special_meal_counts)
    skipped = _skipped_text(skipped_count)

    if error_count == 0:
        return f"Successfully imported {success_count} attendance records{special}{skipped}"

    first = "; ".join(s for s in list(snippets)[:SNIPPET_COUNT] if s)
    errors = _plural(error_count, "error")
    if success_count > 0:
        base = (
            f"Imported {success_count} records{special}{skipped} with {errors}. "
            "Review the error report."
        )
        return f"{base} First issues: {first}" if first else base
    base = f"No records were imported. Encountered {errors}{skipped}. Review the error report."
    return f"{base} Example issues: {first}" if first else base


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """``SUMMARY rows=.. success=.. errors=.. skipped=.. filtered=.. elapsed_sec=..``."""
    return (
        f"SUMMARY rows={result.total_rows} "
        f"success={result.success_count} "
        f"errors={result.error_count} "
        f"skipped={result.skipped_count} "
        f"filtered={result.filtered_count} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
