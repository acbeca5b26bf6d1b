"""Per-run transcript files."""

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..constants import TRANSCRIPT_SUFFIX


def generate_run_id(now: datetime | None = None) -> str:
    """Generate run ID in format YYYYMMDD-HHMMSS."""
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def get_transcript_path(log_dir: Path, run_id: str) -> Path:
    """Get transcript file path for a run.

    Args:
        log_dir: Directory holding transcripts
        run_id: Run identifier

    Returns:
        Path to the run's transcript file
    """
    return log_dir / f"{run_id}-{TRANSCRIPT_SUFFIX}"


def write_transcript(
    console: Console,
    path: Path,
    started_at: datetime,
    json_console: Console | None = None,
) -> Path:
    """Append everything the consoles recorded to the transcript file.

    The consoles must have been created with ``record=True``. The record
    buffers are cleared so a second call only appends new output.

    Args:
        console: Recording console used for the whole run
        path: Transcript file
        started_at: Run start time, written as the header
        json_console: Recording console for JSON output, appended after
            the main console's text

    Returns:
        Path to the transcript file
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    text = console.export_text(clear=True)
    if json_console is not None:
        text += json_console.export_text(clear=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"# machine-setup run started {started_at.isoformat(timespec='seconds')}\n")
        f.write(text)
        if text and not text.endswith("\n"):
            f.write("\n")
    return path
