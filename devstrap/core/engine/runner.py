"""
Step runner — execute one provisioning step and normalize its outcome.

The runner verifies the backing executable exists, makes it executable
if needed (a recoverable local condition, not a failure), logs the step
name, runs it synchronously with inherited stdio and turns the exit
status into a ``StepResult``. It never raises for a step failure and
never retries; halting is the orchestrator's call.
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
import sys
import time
from pathlib import Path

import devstrap
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.models.step import ProvisioningStep, StepResult
from devstrap.core.observability.console import TaggedConsole

logger = logging.getLogger(__name__)

# Directory holding the devstrap package; step programs import from it.
PACKAGE_ROOT = Path(devstrap.__file__).resolve().parent.parent


class StepRunner:
    """Runs step programs found in ``steps_dir``."""

    def __init__(
        self,
        steps_dir: Path,
        *,
        console: TaggedConsole | None = None,
        python: str = sys.executable,
    ):
        self.steps_dir = Path(steps_dir)
        self.console = console or TaggedConsole("[bootstrap]")
        self.python = python

    def script_path(self, step: ProvisioningStep) -> Path:
        return self.steps_dir / step.script

    def ensure_executable(self, path: Path) -> bool:
        """Add execute bits wherever read bits are set.

        Returns:
            True if the mode was changed.
        """
        mode = path.stat().st_mode
        if mode & stat.S_IXUSR:
            return False
        exec_bits = stat.S_IXUSR
        if mode & stat.S_IRGRP:
            exec_bits |= stat.S_IXGRP
        if mode & stat.S_IROTH:
            exec_bits |= stat.S_IXOTH
        os.chmod(path, mode | exec_bits)
        logger.info("Made %s executable", path)
        return True

    def build_argv(self, path: Path) -> list[str]:
        """Python step programs run under this interpreter, the rest directly."""
        if path.suffix == ".py":
            return [self.python, str(path)]
        return [str(path)]

    def child_env(self, facts: EnvironmentFacts | None = None) -> dict[str, str]:
        """Environment for a step process: ours, plus facts and the package root.

        The package root goes first on PYTHONPATH so bundled steps import
        this devstrap even from a source checkout that was never installed.
        """
        env = os.environ.copy()
        if facts is not None:
            env.update(facts.to_env())
        existing = env.get("PYTHONPATH")
        env["PYTHONPATH"] = (
            f"{PACKAGE_ROOT}{os.pathsep}{existing}" if existing else str(PACKAGE_ROOT)
        )
        return env

    def run(
        self,
        step: ProvisioningStep,
        facts: EnvironmentFacts | None = None,
    ) -> StepResult:
        """Run ``step`` and report what happened."""
        path = self.script_path(step)
        if not path.is_file():
            return StepResult.failed_for(step, reason=f"Missing script: {path}")

        try:
            self.ensure_executable(path)
        except OSError as e:
            return StepResult.failed_for(step, reason=f"Cannot make {path} executable: {e}")

        env = self.child_env(facts)

        argv = self.build_argv(path)
        self.console.info(f"Running {step.script}")
        logger.debug("Executing %s", argv)

        start = time.monotonic()
        try:
            proc = subprocess.run(argv, env=env, cwd=str(self.steps_dir))
        except OSError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            return StepResult.failed_for(
                step,
                reason=f"Cannot run {step.script}: {e}",
                duration_ms=elapsed_ms,
            )
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if proc.returncode == 0:
            return StepResult.succeeded_for(step, duration_ms=elapsed_ms)

        return StepResult.failed_for(
            step,
            reason=f"{step.script} exited with code {proc.returncode}",
            exit_code=proc.returncode,
            duration_ms=elapsed_ms,
        )
