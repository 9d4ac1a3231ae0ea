"""
DevstrapConfig — optional user configuration.

Everything has a default: a missing config file means "run the bundled
steps, skip nothing, verify the standard tools".
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_VERIFY_COMMANDS = ["node", "npm", "tmux", "micro", "zsh"]


class DevstrapConfig(BaseModel):
    """Validated contents of config.yml."""

    model_config = ConfigDict(extra="forbid")

    steps_dir: str | None = None     # None = bundled devstrap/steps
    skip: list[str] = Field(default_factory=list)
    verify: list[str] = Field(default_factory=lambda: list(DEFAULT_VERIFY_COMMANDS))
