#!/usr/bin/env python3
"""nvm step — install nvm, then make the latest LTS Node the default."""

from __future__ import annotations

import sys

from devstrap.adapters.shell.command import require_command, run_command
from devstrap.core.detection.probes import HostView, nvm_dir
from devstrap.core.errors import StepError
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.observability.console import TaggedConsole
from devstrap.steps._common import step_main

TAG = "[nvm-setup]"

NVM_VERSION = "v0.40.3"
NVM_INSTALLER = f"https://raw.githubusercontent.com/nvm-sh/nvm/{NVM_VERSION}/install.sh"

_LOAD_NVM = '. "$NVM_DIR/nvm.sh"'


def _nvm(script: str, nvm_home: str, *, capture: bool = False) -> str:
    """Run ``script`` in bash with nvm sourced."""
    result = run_command(
        ["bash", "-c", f"set -e; {_LOAD_NVM}; {script}"],
        env_overrides={"NVM_DIR": nvm_home},
        capture=capture,
    )
    return result.stdout.strip()


def install(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    nvm_home = nvm_dir(HostView())
    nvm_sh = nvm_home / "nvm.sh"

    if nvm_sh.is_file() and nvm_sh.stat().st_size > 0:
        console.info("NVM already installed")
    else:
        require_command("curl")
        console.info(f"Installing NVM {NVM_VERSION}")
        script = run_command(["curl", "-fsSL", NVM_INSTALLER], capture=True).stdout
        run_command(["bash"], input_text=script, env_overrides={"NVM_DIR": str(nvm_home)})

    if not nvm_sh.is_file():
        raise StepError(f"NVM not found at {nvm_sh}")

    console.info("Installing latest LTS Node")
    _nvm("nvm install --lts && nvm alias default 'lts/*' && nvm use default", str(nvm_home))

    version = _nvm("nvm version default", str(nvm_home), capture=True)
    if not version or version == "N/A":
        raise StepError("Failed to set default Node version")
    console.success(f"Default Node set to {version}")

    console.blank()
    console.info("Done.")
    console.info("Restart your shell, or run:")
    console.info('  export NVM_DIR="$HOME/.nvm"')
    console.info('  [ -s "$NVM_DIR/nvm.sh" ] && \\. "$NVM_DIR/nvm.sh"')
    console.info("Then verify with: node -v && npm -v")


def main(argv: list[str] | None = None) -> int:
    return step_main(TAG, install, argv)


if __name__ == "__main__":
    sys.exit(main())
