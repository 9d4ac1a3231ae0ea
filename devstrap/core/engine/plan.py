"""
Step plan — the fixed, ordered provisioning sequence.

Order matters: later steps use artifacts of earlier ones (micro needs
the node/npm that nvm installs).
"""

from __future__ import annotations

from pathlib import Path

import devstrap.steps
from devstrap.core.models.step import ProvisioningStep

DEFAULT_STEPS: list[ProvisioningStep] = [
    ProvisioningStep(
        name="zsh", script="zsh.py", order=1,
        description="zsh, Oh My Zsh, plugins and managed aliases",
    ),
    ProvisioningStep(
        name="nvm", script="nvm.py", order=2,
        description="nvm and the latest LTS Node as default",
    ),
    ProvisioningStep(
        name="cli-tools", script="cli_tools.py", order=3,
        description="ripgrep, fd, fzf, jq, yq, bat, zoxide, delta",
    ),
    ProvisioningStep(
        name="micro", script="micro.py", order=4,
        description="micro editor with the TypeScript LSP plugin",
    ),
    ProvisioningStep(
        name="tmux", script="tmux.py", order=5,
        description="tmux and ~/.tmux.conf",
    ),
]


def default_steps_dir() -> Path:
    """Directory holding the bundled step programs."""
    return Path(devstrap.steps.__file__).resolve().parent


def step_names(steps: list[ProvisioningStep] | None = None) -> list[str]:
    return [s.name for s in (steps if steps is not None else DEFAULT_STEPS)]


def ordered_steps(steps: list[ProvisioningStep] | None = None) -> list[ProvisioningStep]:
    """Validate and sort a step list.

    Raises:
        ValueError: Duplicate names or positions (the order must be total).
    """
    steps = list(steps if steps is not None else DEFAULT_STEPS)

    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate step names: {names}")

    orders = [s.order for s in steps]
    if len(set(orders)) != len(orders):
        raise ValueError(f"Duplicate step positions: {orders}")

    return sorted(steps, key=lambda s: s.order)
