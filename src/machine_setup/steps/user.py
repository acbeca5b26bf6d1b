"""Per-user setup: shell profile, git, node toolchain and 1Password."""

from functools import partial

from ..config import GitConfig, NodeConfig, OnePasswordConfig, SetupConfig
from ..errors import StepError
from ..models import Probe, Step, StepId, StepResult
from ..services.files import ensure_lines, missing_lines
from ..services.machine import MachineState

ZPROFILE = "~/.zprofile"
ZSHRC = "~/.zshrc"
PNPM_HOME = "~/Library/pnpm"

# Probes may only use a pnpm that corepack already has; never fetch or prompt
COREPACK_OFFLINE_ENV = {"COREPACK_ENABLE_NETWORK": "0", "COREPACK_ENABLE_DOWNLOAD_PROMPT": "0"}


def _shell_path(path: str) -> str:
    """Rewrite a ``~/`` path so it expands inside double quotes."""
    return "$HOME/" + path[2:] if path.startswith("~/") else path


# ============================================================================
# Shell profile
# ============================================================================


def profile_lines(state: MachineState, config: SetupConfig) -> dict[str, list[str]]:
    """Return the lines each zsh startup file must contain."""
    zprofile: list[str] = []
    brew = state.find_brew()
    if brew is not None:
        zprofile.append(f'eval "$({brew} shellenv)"')
    zprofile.append(f'export SSH_AUTH_SOCK="{_shell_path(config.onepassword.agent_socket)}"')
    zprofile.extend(config.shell.zprofile_lines)
    return {ZPROFILE: zprofile, ZSHRC: list(config.shell.zshrc_lines)}


def probe_shell_profile(state: MachineState, config: SetupConfig) -> Probe:
    missing = {
        name: missing_lines(state.expand_path(name), lines)
        for name, lines in profile_lines(state, config).items()
    }
    count = sum(len(lines) for lines in missing.values())
    if count:
        files = ", ".join(name for name, lines in missing.items() if lines)
        return Probe(needed=True, reason=f"{count} line(s) missing from {files}")
    return Probe(needed=False, reason="shell profile up to date")


def apply_shell_profile(state: MachineState, config: SetupConfig) -> StepResult:
    created = False
    added = 0
    for name, lines in profile_lines(state, config).items():
        path = state.expand_path(name)
        created = created or not path.exists()
        added += len(ensure_lines(path, lines))
    return StepResult(
        category="installed" if created else "changed",
        detail=f"Shell profile ({added} line(s) added)",
    )


# ============================================================================
# Git
# ============================================================================


def git_settings(state: MachineState, config: GitConfig) -> dict[str, str]:
    """Return the global git settings to enforce."""
    settings = {}
    if config.user_name:
        settings["user.name"] = config.user_name
    if config.user_email:
        settings["user.email"] = config.user_email
    settings["core.excludesfile"] = str(state.expand_path(config.excludes_file))
    return settings


def probe_git_config(state: MachineState, config: GitConfig) -> Probe:
    git = state.which("git")
    if git is None:
        return Probe(needed=True, reason="git not found")
    for key, value in git_settings(state, config).items():
        current = state.output([git, "config", "--global", "--get", key])
        if current != value:
            return Probe(needed=True, reason=f"{key} is {current or 'not set'}")
    excludes = state.expand_path(config.excludes_file)
    if missing_lines(excludes, config.ignore_patterns):
        return Probe(needed=True, reason=f"{config.excludes_file} incomplete")
    return Probe(needed=False, reason="git configured")


def apply_git_config(state: MachineState, config: GitConfig) -> StepResult:
    git = state.require("git")
    ensure_lines(state.expand_path(config.excludes_file), config.ignore_patterns)
    for key, value in git_settings(state, config).items():
        state.run([git, "config", "--global", key, value])
    return StepResult(category="changed", detail="Git global config")


# ============================================================================
# Node toolchain (mise + corepack + pnpm)
# ============================================================================


def probe_node_toolchain(state: MachineState, config: NodeConfig) -> Probe:
    mise = state.which("mise")
    if mise is None:
        return Probe(needed=True, reason="mise not installed")
    node = f"node@{config.version}"
    if not state.succeeds([mise, "where", node]):
        return Probe(needed=True, reason=f"{node} not installed")
    listing = state.output(
        [mise, "exec", node, "--", "pnpm", "list", "--global", "--depth", "0"],
        extra_env=COREPACK_OFFLINE_ENV,
    )
    if listing is None:
        return Probe(needed=True, reason="pnpm not available")
    missing = [pkg for pkg in config.global_packages if pkg not in listing]
    if missing:
        return Probe(needed=True, reason=f"missing global packages: {', '.join(missing)}")
    return Probe(needed=False, reason=f"{node} with pnpm installed")


def apply_node_toolchain(state: MachineState, config: NodeConfig) -> StepResult:
    mise = state.require("mise")
    node = f"node@{config.version}"
    pnpm_env = {"PNPM_HOME": str(state.expand_path(PNPM_HOME))}
    state.prepend_path(pnpm_env["PNPM_HOME"])

    state.run([mise, "use", "-g", node])
    state.run([mise, "exec", node, "--", "corepack", "enable"])
    pnpm = f"pnpm@{config.pnpm_version}"
    state.run([mise, "exec", node, "--", "corepack", "prepare", pnpm, "--activate"])
    if config.global_packages:
        state.run(
            [mise, "exec", node, "--", "pnpm", "add", "-g", *config.global_packages],
            extra_env=pnpm_env,
        )

    detail = f"Node {config.version} with pnpm"
    if config.global_packages:
        detail += f" ({', '.join(config.global_packages)})"
    return StepResult(category="installed", detail=detail)


# ============================================================================
# 1Password CLI
# ============================================================================


def _op_has_account(state: MachineState, op: str) -> bool:
    return bool(state.output([op, "account", "list"]))


def probe_onepassword(state: MachineState) -> Probe:
    op = state.which("op")
    if op is None:
        return Probe(needed=True, reason="1Password CLI not installed")
    if not _op_has_account(state, op):
        return Probe(needed=True, reason="no 1Password account added")
    if not state.succeeds([op, "whoami"]):
        return Probe(needed=True, reason="not signed in to 1Password")
    return Probe(needed=False, reason="signed in to 1Password")


def apply_onepassword(state: MachineState) -> StepResult:
    op = state.which("op")
    if op is None:
        raise StepError("1Password CLI not found; install it via the Brewfile")
    added = False
    if not _op_has_account(state, op):
        state.run([op, "account", "add"], interactive=True)
        added = True
    if not state.succeeds([op, "whoami"]):
        state.run([op, "signin"], interactive=True)
    if added:
        return StepResult(category="installed", detail="1Password account added")
    return StepResult(category="changed", detail="Signed in to 1Password")


# ============================================================================
# 1Password SSH agent
# ============================================================================


def probe_ssh_agent(state: MachineState, config: OnePasswordConfig) -> Probe:
    if state.expand_path(config.agent_socket).is_socket():
        return Probe(needed=False, reason="agent socket present")
    return Probe(needed=True, reason="1Password SSH agent socket not found")


def apply_ssh_agent(state: MachineState, config: OnePasswordConfig) -> StepResult:
    socket = state.expand_path(config.agent_socket)
    state.wait_until(
        socket.is_socket,
        "Enable the 1Password SSH agent (Settings -> Developer) and unlock the app.",
        "Press Enter once the agent is enabled...",
    )
    return StepResult(category="changed", detail="1Password SSH agent enabled")


def build_user_steps(config: SetupConfig) -> list[Step]:
    """Return the per-user steps in execution order."""
    return [
        Step(
            id=StepId.SHELL_PROFILE,
            label="Shell profile",
            probe=partial(probe_shell_profile, config=config),
            apply=partial(apply_shell_profile, config=config),
        ),
        Step(
            id=StepId.GIT_CONFIG,
            label="Git config",
            probe=partial(probe_git_config, config=config.git),
            apply=partial(apply_git_config, config=config.git),
        ),
        Step(
            id=StepId.NODE_TOOLCHAIN,
            label="Node toolchain",
            probe=partial(probe_node_toolchain, config=config.node),
            apply=partial(apply_node_toolchain, config=config.node),
            prerequisites=(StepId.BREW_BUNDLE,),
        ),
        Step(
            id=StepId.ONEPASSWORD,
            label="1Password CLI",
            probe=probe_onepassword,
            apply=apply_onepassword,
            prerequisites=(StepId.BREW_BUNDLE,),
        ),
        Step(
            id=StepId.SSH_AGENT,
            label="1Password SSH agent",
            probe=partial(probe_ssh_agent, config=config.onepassword),
            apply=partial(apply_ssh_agent, config=config.onepassword),
            prerequisites=(StepId.ONEPASSWORD,),
        ),
    ]
