"""Line-oriented edits of dotfiles."""

from collections.abc import Iterable
from pathlib import Path

from ..errors import StepError


def _read(path: Path) -> str:
    """Return a file's text, or "" if it does not exist.

    Raises:
        StepError: If the file exists but cannot be read as text
    """
    if not path.exists():
        return ""
    try:
        return path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise StepError(f"Cannot read {path}: {e}") from e


def missing_lines(path: Path, lines: Iterable[str]) -> list[str]:
    """Return the lines not already present in a file.

    A line counts as present if it appears anywhere in the file as a
    substring, so a line that was hand-edited around is not appended
    twice. A missing file is missing every line.

    Raises:
        StepError: If the file exists but cannot be read as text
    """
    content = _read(path)
    return [line for line in lines if line not in content]


def ensure_lines(path: Path, lines: Iterable[str]) -> list[str]:
    """Append each missing line to a file, creating it if needed.

    Args:
        path: File to edit
        lines: Lines that must be present

    Returns:
        The lines that were appended

    Raises:
        StepError: If the file cannot be read or written
    """
    content = _read(path)
    added = [line for line in lines if line not in content]
    if not added and path.exists():
        return []
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            if content and not content.endswith("\n"):
                f.write("\n")
            for line in added:
                f.write(f"{line}\n")
    except OSError as e:
        raise StepError(f"Cannot write {path}: {e}") from e
    return added
