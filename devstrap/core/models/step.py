"""
ProvisioningStep and StepResult — the execution contract.

Steps describe what to run. Results describe what happened. The runner
turns a step into a result and never raises for a step failure: a
non-zero exit is captured as ``StepResult.failed`` and the orchestrator
decides to halt.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ProvisioningStep(BaseModel):
    """One provisioning unit in the fixed sequence."""

    model_config = ConfigDict(frozen=True)

    name: str                       # step identifier ("zsh", "cli-tools")
    script: str                     # backing executable, relative to the steps dir
    order: int                      # unique position in the sequence
    description: str = ""


class StepResult(BaseModel):
    """Outcome of one step in one run."""

    step: ProvisioningStep
    outcome: Literal["skipped", "succeeded", "failed"] = "succeeded"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    exit_code: int | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the step ended in its target state (ran or skipped)."""
        return self.outcome != "failed"

    @property
    def failed(self) -> bool:
        return self.outcome == "failed"

    @property
    def skipped(self) -> bool:
        return self.outcome == "skipped"

    @classmethod
    def succeeded_for(cls, step: ProvisioningStep, **kwargs: Any) -> StepResult:
        """Create a success result."""
        return cls(step=step, outcome="succeeded", exit_code=0, **kwargs)

    @classmethod
    def failed_for(
        cls,
        step: ProvisioningStep,
        reason: str,
        **kwargs: Any,
    ) -> StepResult:
        """Create a failure result."""
        return cls(step=step, outcome="failed", reason=reason, **kwargs)

    @classmethod
    def skipped_for(
        cls,
        step: ProvisioningStep,
        reason: str = "already configured",
        **kwargs: Any,
    ) -> StepResult:
        """Create a skip result."""
        return cls(step=step, outcome="skipped", reason=reason, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step.name,
            "script": self.step.script,
            "outcome": self.outcome,
            "exit_code": self.exit_code,
            "reason": self.reason,
            "duration_ms": self.duration_ms,
        }


class ToolVersion(BaseModel):
    """One line of the verification report."""

    name: str
    version: str | None = None

    @property
    def found(self) -> bool:
        return self.version is not None

    def display(self) -> str:
        return self.version if self.version is not None else "NOT FOUND"
