"""Summary rendering for the end of a run."""

from typing import Any

from ..models import OutcomeCategory, RunMode, RunSummary

NO_CHANGES_MESSAGE = "No changes needed."
NOTHING_TO_DO_MESSAGE = "Nothing to do."

# Live-mode sections, in the order they are printed
LIVE_SECTIONS = (
    (OutcomeCategory.INSTALLED, "Installed"),
    (OutcomeCategory.CHANGED, "Changed"),
    (OutcomeCategory.SKIPPED, "Skipped"),
    (OutcomeCategory.FAILED, "Failed"),
)


def _section(title: str, details: list[str]) -> str:
    return "\n".join([f"{title}:", *(f"  - {detail}" for detail in details)])


def render(summary: RunSummary) -> str:
    """Render a run summary as plain text.

    A dry-run renders only the planned actions. A live run renders the
    non-empty Installed, Changed, Skipped and Failed sections.
    """
    if summary.mode == RunMode.DRY_RUN:
        planned = summary.planned
        if not planned:
            return NO_CHANGES_MESSAGE
        return _section("Planned changes", planned)

    sections = [
        _section(title, summary.details(category))
        for category, title in LIVE_SECTIONS
        if summary.details(category)
    ]
    if not sections:
        return NOTHING_TO_DO_MESSAGE
    return "\n\n".join(sections)


def render_json(summary: RunSummary) -> dict[str, Any]:
    """Render a run summary as a JSON-serializable dict."""
    data: dict[str, Any] = {
        "mode": summary.mode.value,
        "aborted": summary.aborted,
        "failed_step": summary.failed_step.value if summary.failed_step else None,
        "exit_code": summary.exit_code,
    }
    if summary.mode == RunMode.DRY_RUN:
        data["planned"] = summary.planned
    else:
        for category, _title in LIVE_SECTIONS:
            data[category.value] = summary.details(category)
    return data
