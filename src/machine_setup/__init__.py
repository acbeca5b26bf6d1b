"""machine-setup: idempotent macOS bootstrap orchestrator."""

__version__ = "0.1.0"
