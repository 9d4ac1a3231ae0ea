"""
Shared step-program plumbing: argument handling, environment facts,
error → exit-code conversion.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Sequence

from devstrap.core.detection.environment import detect_environment, facts_from_env
from devstrap.core.errors import DevstrapError
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.observability.logging_config import setup_logging

logger = logging.getLogger(__name__)

StepAction = Callable[[EnvironmentFacts, TaggedConsole], None]


def resolve_facts() -> EnvironmentFacts:
    """Facts exported by the orchestrator, or detected when run standalone."""
    return facts_from_env() or detect_environment()


def step_main(
    tag: str,
    install: StepAction,
    argv: Sequence[str] | None = None,
    *,
    uninstall: StepAction | None = None,
) -> int:
    """Run a step's install (or ``uninstall``) action and return an exit code.

    Unrecoverable failures surface as ``DevstrapError`` and become a red
    ``ERROR:`` line on stderr plus exit code 1.
    """
    setup_logging()
    console = TaggedConsole(tag)
    args = list(sys.argv[1:] if argv is None else argv)

    action = install
    if args:
        if args == ["uninstall"] and uninstall is not None:
            action = uninstall
        else:
            usage = " [uninstall]" if uninstall is not None else ""
            console.error(f"Unexpected arguments: {' '.join(args)} (usage: {tag.strip('[]')}{usage})")
            return 2

    try:
        facts = resolve_facts()
        console.info(f"Detected environment: {facts.describe()}")
        action(facts, console)
    except DevstrapError as e:
        console.error(str(e))
        return 1
    except KeyboardInterrupt:
        console.error("Interrupted")
        return 130
    return 0
