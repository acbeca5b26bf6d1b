"""Core step engine for machine-setup.

This package contains the engine logic; it touches the machine only
through the probe/apply functions of each step:
- registry: Ordered, validated step catalog
- selector: Token expansion, prerequisite closure and exclusion
- executor: Sequential plan/apply pass over the registry
- reporter: Summary rendering
- transcript: Per-run transcript files
"""

from .executor import probe_step, run_steps
from .registry import Registry
from .reporter import NO_CHANGES_MESSAGE, NOTHING_TO_DO_MESSAGE, render, render_json
from .selector import (
    LEGACY_FLAGS,
    Selection,
    apply_legacy_flags,
    build_alias_table,
    close_over_prerequisites,
    expand,
    resolve,
    split_tokens,
)
from .transcript import generate_run_id, get_transcript_path, write_transcript

__all__ = [
    "LEGACY_FLAGS",
    "NOTHING_TO_DO_MESSAGE",
    "NO_CHANGES_MESSAGE",
    "Registry",
    "Selection",
    "apply_legacy_flags",
    "build_alias_table",
    "close_over_prerequisites",
    "expand",
    "generate_run_id",
    "get_transcript_path",
    "probe_step",
    "render",
    "render_json",
    "resolve",
    "run_steps",
    "split_tokens",
    "write_transcript",
]
