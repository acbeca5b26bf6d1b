"""Handle to the machine being configured.

Every probe and apply action receives a MachineState instead of reading
the ambient environment. It owns the subprocess runner, the PATH that
commands see, the home directory that ``~`` expands against, and the
blocking wait used when a step needs the operator to do something.
"""

import logging
import os
import platform
import shlex
import subprocess
import tempfile
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from types import TracebackType

import typer

from ..constants import DEFAULT_SEARCH_PATHS, DOWNLOAD_TIMEOUT, PROBE_TIMEOUT
from ..errors import CommandError

logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]
Prompt = Callable[[str], object]


def current_platform() -> str:
    """Return the host OS name as reported by platform.system()."""
    return platform.system()


def _prompt_enter(text: str) -> object:
    return typer.prompt(text, default="", show_default=False, prompt_suffix=" ")


class MachineState:
    """Explicit handle to current machine state.

    Args:
        home: Home directory (defaults to the current user's)
        env: Environment for child processes (defaults to os.environ)
        search_paths: Directories checked for executables not on PATH
        runner: subprocess.run-compatible callable
        prompt: Blocks until the operator responds to a message
    """

    def __init__(
        self,
        home: Path | None = None,
        env: Mapping[str, str] | None = None,
        search_paths: Sequence[str | Path] = DEFAULT_SEARCH_PATHS,
        runner: Runner = subprocess.run,
        prompt: Prompt = _prompt_enter,
    ) -> None:
        self.home = home or Path.home()
        self.env = dict(os.environ if env is None else env)
        self.search_paths = tuple(Path(p) for p in search_paths)
        self.downloads: dict[str, Path] = {}
        self._runner = runner
        self._prompt = prompt

    def __enter__(self) -> "MachineState":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Remove temporary files downloaded during the run."""
        for path in self.downloads.values():
            path.unlink(missing_ok=True)
        self.downloads.clear()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        *,
        timeout: int | None = None,
        interactive: bool = False,
        extra_env: Mapping[str, str] | None = None,
    ) -> "subprocess.CompletedProcess[str]":
        """Run a command and require it to succeed.

        Args:
            args: Command and arguments
            timeout: Optional timeout in seconds (None waits forever)
            interactive: Inherit the terminal instead of capturing output,
                for commands that prompt the operator (sudo, installers)
            extra_env: Variables added to the environment for this command

        Returns:
            The completed process

        Raises:
            CommandError: If the command is missing, times out or exits non-zero
        """
        args = [str(a) for a in args]
        env = {**self.env, **(extra_env or {})}
        logger.debug("Running: %s", shlex.join(args))
        try:
            result = self._runner(
                args,
                capture_output=not interactive,
                text=True,
                timeout=timeout,
                env=env,
                check=False,
            )
        except FileNotFoundError:
            raise CommandError(f"Command not found: {args[0]}") from None
        except subprocess.TimeoutExpired as e:
            raise CommandError(f"{args[0]} timed out after {timeout} seconds") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"{shlex.join(args)} exited with {result.returncode}"
            if stderr:
                message += f": {stderr[:200]}"
            raise CommandError(message, returncode=result.returncode)
        return result

    def succeeds(
        self,
        args: Sequence[str],
        timeout: int | None = PROBE_TIMEOUT,
        extra_env: Mapping[str, str] | None = None,
    ) -> bool:
        """Return True if the command runs and exits zero."""
        try:
            self.run(args, timeout=timeout, extra_env=extra_env)
        except CommandError:
            return False
        return True

    def output(
        self,
        args: Sequence[str],
        timeout: int | None = PROBE_TIMEOUT,
        extra_env: Mapping[str, str] | None = None,
    ) -> str | None:
        """Return stripped stdout of a successful command, or None."""
        try:
            result = self.run(args, timeout=timeout, extra_env=extra_env)
        except CommandError:
            return None
        return (result.stdout or "").strip()

    # ------------------------------------------------------------------
    # Executables and paths
    # ------------------------------------------------------------------

    def which(self, name: str) -> str | None:
        """Locate an executable on PATH or in the fallback search paths."""
        for directory in [*self.env.get("PATH", "").split(os.pathsep), *self.search_paths]:
            if not directory:
                continue
            candidate = Path(directory) / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
        return None

    def require(self, name: str) -> str:
        """Locate an executable or raise CommandError."""
        path = self.which(name)
        if path is None:
            raise CommandError(f"{name} not found")
        return path

    def find_brew(self) -> str | None:
        """Locate the Homebrew executable."""
        return self.which("brew")

    def prepend_path(self, directory: str | Path) -> None:
        """Put a directory first on PATH for all later commands."""
        directory = str(directory)
        parts = [p for p in self.env.get("PATH", "").split(os.pathsep) if p and p != directory]
        self.env["PATH"] = os.pathsep.join([directory, *parts])

    def expand_path(self, path: str | Path) -> Path:
        """Expand ``~`` and ``$HOME`` against this machine's home directory."""
        text = str(path)
        if text == "~" or text.startswith("~/"):
            return self.home / text[2:]
        for prefix in ("$HOME/", "${HOME}/"):
            if text.startswith(prefix):
                return self.home / text[len(prefix) :]
        return Path(text)

    def download(self, url: str, timeout: int = DOWNLOAD_TIMEOUT) -> Path | None:
        """Download a URL to a temporary file, once per run.

        The file is removed when the MachineState is closed.

        Returns:
            Path to the downloaded file, or None if the download failed
        """
        if url in self.downloads:
            return self.downloads[url]

        try:
            with urllib.request.urlopen(url, timeout=timeout) as resp:
                data = resp.read()
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug("Download of %s failed: %s", url, e)
            return None

        with tempfile.NamedTemporaryFile(prefix="machine-setup-", delete=False) as f:
            f.write(data)
        path = Path(f.name)
        self.downloads[url] = path
        return path

    # ------------------------------------------------------------------
    # Operator interaction
    # ------------------------------------------------------------------

    def wait_until(
        self,
        condition: Callable[[], bool],
        message: str,
        prompt: str = "Press Enter to continue...",
    ) -> None:
        """Block until condition() holds.

        The condition is checked first; while it does not hold, the message
        is logged and the operator prompt blocks until they press Enter.
        There is no timeout.
        """
        while not condition():
            logger.warning(message)
            self._prompt(prompt)
