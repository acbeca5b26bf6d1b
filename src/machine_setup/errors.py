"""Exceptions raised by machine-setup."""


class SetupError(Exception):
    """Base exception for machine-setup errors."""


class UnknownSectionError(SetupError):
    """Raised when a selection token names no known group or step."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Unknown section: {token}")
        self.token = token


class RegistryError(SetupError):
    """Raised when the step catalog is inconsistent."""


class StepError(SetupError):
    """Raised when a step cannot reach its desired state."""


class CommandError(StepError):
    """Raised when an external command fails, times out, or is missing."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
