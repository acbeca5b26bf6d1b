"""Selection of steps from --only/--skip tokens.

Tokens name a group (``global``), a step (``homebrew``) or an alias of
either. The include tokens are expanded and closed over prerequisites,
then the exclude tokens are removed. An explicit skip always wins: a step
whose prerequisite was skipped is dropped as well, since it would run
against state it assumes is in place.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..errors import UnknownSectionError
from ..models import StepId
from .registry import Registry

logger = logging.getLogger(__name__)

AliasTable = Mapping[str, frozenset[StepId]]

ALL_TOKEN = "all"

# Legacy single-purpose flags: flag name -> (token list, token)
LEGACY_FLAGS: dict[str, tuple[str, str]] = {
    "global_only": ("only", "global"),
    "user_only": ("only", "user"),
    "defaults_only": ("only", "defaults"),
    "skip_global": ("skip", "global"),
    "skip_user": ("skip", "user"),
    "skip_defaults": ("skip", "defaults"),
}


@dataclass(frozen=True)
class Selection:
    """Steps chosen for one run.

    Attributes:
        selected: Steps that will be probed (and maybe applied).
        excluded: Steps named by the exclude tokens.
        forced: Selected steps the operator asked for by name or group;
            these are applied even when their probe reports no work.
        blocked: Steps dropped because one of their prerequisites was
            excluded.
    """

    selected: frozenset[StepId]
    excluded: frozenset[StepId] = frozenset()
    forced: frozenset[StepId] = frozenset()
    blocked: frozenset[StepId] = frozenset()


def build_alias_table(
    registry: Registry,
    groups: Mapping[str, Iterable[StepId]],
    aliases: Mapping[str, str] | None = None,
) -> dict[str, frozenset[StepId]]:
    """Build the token expansion table.

    Every step id is a token for itself, every group for its members, and
    ``all`` for the whole registry. ``aliases`` maps extra tokens onto
    existing ones.

    Args:
        registry: Step catalog
        groups: Group name -> member step ids
        aliases: Extra token -> existing token

    Returns:
        Mapping from lowercase token to the set of step ids it names

    Raises:
        UnknownSectionError: If an alias targets an unknown token
    """
    table: dict[str, frozenset[StepId]] = {ALL_TOKEN: frozenset(registry.ids)}
    for step_id in registry.ids:
        table[step_id.value] = frozenset({step_id})
    for name, members in groups.items():
        table[name.lower()] = frozenset(m for m in members if m in registry)
    for alias, target in (aliases or {}).items():
        if target not in table:
            raise UnknownSectionError(target)
        table[alias.lower()] = table[target]
    return table


def split_tokens(values: Iterable[str] | None) -> list[str]:
    """Split comma-separated option values into normalized tokens."""
    tokens: list[str] = []
    for value in values or []:
        for part in value.split(","):
            token = part.strip().lower()
            if token:
                tokens.append(token)
    return tokens


def apply_legacy_flags(
    flags: Mapping[str, bool],
    only: list[str],
    skip: list[str],
) -> tuple[list[str], list[str]]:
    """Translate legacy shorthand flags into --only/--skip tokens.

    Args:
        flags: Legacy flag name -> whether it was given
        only: Include tokens supplied directly
        skip: Exclude tokens supplied directly

    Returns:
        New (only, skip) token lists
    """
    only = list(only)
    skip = list(skip)
    for name, enabled in flags.items():
        if not enabled:
            continue
        target, token = LEGACY_FLAGS[name]
        (only if target == "only" else skip).append(token)
    return only, skip


def expand(tokens: Iterable[str], aliases: AliasTable) -> frozenset[StepId]:
    """Expand tokens into the union of the steps they name.

    Raises:
        UnknownSectionError: On the first token not in the alias table
    """
    result: set[StepId] = set()
    for token in tokens:
        key = token.strip().lower()
        if key not in aliases:
            raise UnknownSectionError(token)
        result |= aliases[key]
    return frozenset(result)


def close_over_prerequisites(
    step_ids: Iterable[StepId], registry: Registry
) -> frozenset[StepId]:
    """Add every transitive prerequisite of the given steps."""
    closed = set(step_ids)
    pending = list(closed)
    while pending:
        step = registry.get(pending.pop())
        for prereq in step.prerequisites:
            if prereq not in closed:
                closed.add(prereq)
                pending.append(prereq)
    return frozenset(closed)


def _drop_orphans(
    step_ids: frozenset[StepId], registry: Registry
) -> tuple[frozenset[StepId], frozenset[StepId]]:
    """Remove steps whose prerequisites are not all kept.

    Registry order lists prerequisites first, so a single ordered pass
    reaches the fixed point.
    """
    kept: set[StepId] = set()
    dropped: set[StepId] = set()
    for step_id in registry.ordered(step_ids):
        missing = [p for p in registry.get(step_id).prerequisites if p not in kept]
        if missing:
            logger.debug(
                "Dropping %s: prerequisite %s not selected", step_id.value, missing[0].value
            )
            dropped.add(step_id)
        else:
            kept.add(step_id)
    return frozenset(kept), frozenset(dropped)


def resolve(
    include_tokens: Iterable[str],
    exclude_tokens: Iterable[str],
    registry: Registry,
    aliases: AliasTable,
) -> Selection:
    """Resolve include/exclude tokens into the final step selection.

    Args:
        include_tokens: Tokens from --only (empty means every step)
        exclude_tokens: Tokens from --skip
        registry: Step catalog
        aliases: Token expansion table

    Returns:
        The final Selection

    Raises:
        UnknownSectionError: If any token is unknown. Nothing has run yet.
    """
    include_tokens = list(include_tokens)
    requested = expand(include_tokens, aliases)
    excluded = expand(exclude_tokens, aliases)

    initial = requested if include_tokens else frozenset(registry.ids)
    closed = close_over_prerequisites(initial, registry)
    selected, blocked = _drop_orphans(closed - excluded, registry)

    forced = requested & selected if include_tokens else frozenset()
    return Selection(selected=selected, excluded=excluded, forced=forced, blocked=blocked)
