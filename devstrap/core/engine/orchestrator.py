"""
Orchestrator — the provisioning loop.

Flow:
    refuse root → detect environment → for each step in order:
        probe → skip | run → (halt on first failure)
    → verification pass → report

There is no rollback and no retry: provisioning is additive and every
step is re-runnable, so after a failure the operator fixes the cause and
runs the whole thing again; already-satisfied steps are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping, Protocol

from devstrap.core.config.loader import load_config
from devstrap.core.detection.environment import detect_environment, ensure_not_root
from devstrap.core.detection.probes import PROBES, CapabilityCheck, HostView
from devstrap.core.detection.tool_version import verify_tools
from devstrap.core.engine.plan import default_steps_dir, ordered_steps, step_names
from devstrap.core.engine.runner import StepRunner
from devstrap.core.models.config import DEFAULT_VERIFY_COMMANDS, DevstrapConfig
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.models.step import ProvisioningStep, StepResult, ToolVersion
from devstrap.core.observability.console import TaggedConsole

logger = logging.getLogger(__name__)

Verifier = Callable[[list[str]], list[ToolVersion]]


class Runner(Protocol):
    def run(
        self,
        step: ProvisioningStep,
        facts: EnvironmentFacts | None = None,
    ) -> StepResult:
        ...


@dataclass
class BootstrapReport:
    """Result of one orchestrator run."""

    facts: EnvironmentFacts | None = None
    results: list[StepResult] = field(default_factory=list)
    verification: list[ToolVersion] = field(default_factory=list)
    aborted: bool = False
    shell: str | None = None

    @property
    def executed(self) -> list[str]:
        return [r.step.name for r in self.results if not r.skipped]

    @property
    def skipped(self) -> list[str]:
        return [r.step.name for r in self.results if r.skipped]

    @property
    def failed_step(self) -> StepResult | None:
        return next((r for r in self.results if r.failed), None)

    @property
    def status(self) -> str:
        return "aborted" if self.aborted else "done"

    def to_dict(self) -> dict:
        failed = self.failed_step
        return {
            "status": self.status,
            "environment": self.facts.model_dump(mode="json") if self.facts else None,
            "steps": [r.to_dict() for r in self.results],
            "failed_step": failed.step.name if failed else None,
            "verification": {t.name: t.version for t in self.verification},
            "shell": self.shell,
        }


class Orchestrator:
    """Runs the fixed step sequence with skip-if-satisfied and fail-fast."""

    def __init__(
        self,
        runner: Runner,
        *,
        steps: list[ProvisioningStep] | None = None,
        probes: Mapping[str, CapabilityCheck] | None = None,
        host: HostView | None = None,
        skip: Iterable[str] = (),
        verify_commands: list[str] | None = None,
        verifier: Verifier | None = None,
        console: TaggedConsole | None = None,
    ):
        self.runner = runner
        self.steps = ordered_steps(steps)
        self.probes = dict(PROBES if probes is None else probes)
        self.host = host or HostView()
        self.skip = set(skip)
        self.verify_commands = list(
            DEFAULT_VERIFY_COMMANDS if verify_commands is None else verify_commands
        )
        self.verifier = verifier or (lambda tools: verify_tools(tools, which=self.host.which))
        self.console = console or TaggedConsole("[bootstrap]")

    def is_satisfied(self, step: ProvisioningStep) -> bool:
        """Read-only: does the step's end state already hold?"""
        check = self.probes.get(step.name)
        if check is None:
            return False
        return check(self.host)

    def status(self) -> dict[str, bool]:
        """Probe every step without running anything."""
        return {step.name: self.is_satisfied(step) for step in self.steps}

    def run(self, facts: EnvironmentFacts) -> BootstrapReport:
        report = BootstrapReport(facts=facts)

        for step in self.steps:
            if step.name in self.skip:
                self.console.info(f"Skipping {step.script} (disabled in config)")
                report.results.append(StepResult.skipped_for(step, reason="disabled in config"))
                continue

            if self.is_satisfied(step):
                self.console.info(f"Skipping {step.script} (already configured)")
                report.results.append(StepResult.skipped_for(step))
                continue

            result = self.runner.run(step, facts)
            report.results.append(result)

            if result.failed:
                self.console.error(f"Step {step.name} failed: {result.reason}")
                logger.error("Aborting after failed step %s: %s", step.name, result.reason)
                report.aborted = True
                return report

            logger.info("✓ %s (%d ms)", step.name, result.duration_ms)
            if not self.is_satisfied(step):
                # Usually PATH changes that only a new shell picks up.
                logger.info("%s ran but is not yet detected in this process", step.name)

        report.verification = self.verifier(self.verify_commands)
        report.shell = self.host.environ.get("SHELL")
        return report


def run_bootstrap(
    config: DevstrapConfig | None = None,
    *,
    runner: Runner | None = None,
    host: HostView | None = None,
    is_root: bool | None = None,
    detect: Callable[[], EnvironmentFacts] | None = None,
    verifier: Verifier | None = None,
    console: TaggedConsole | None = None,
) -> BootstrapReport:
    """Top-level entry: refuse root, detect once, run the sequence.

    Raises:
        RootUserError: Running as root.
        UnsupportedEnvironmentError: Unknown OS or package manager.
    """
    ensure_not_root(is_root)

    if config is None:
        config = load_config(known_steps=step_names())

    facts = detect() if detect is not None else detect_environment(is_root=is_root)

    console = console or TaggedConsole("[bootstrap]")
    if runner is None:
        steps_dir = Path(config.steps_dir).expanduser() if config.steps_dir else default_steps_dir()
        runner = StepRunner(steps_dir, console=console)

    orchestrator = Orchestrator(
        runner,
        host=host,
        skip=config.skip,
        verify_commands=config.verify,
        verifier=verifier,
        console=console,
    )
    return orchestrator.run(facts)
