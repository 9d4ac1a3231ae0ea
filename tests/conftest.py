"""
Shared test fixtures and configuration.
"""

from pathlib import Path
from typing import Callable

import pytest

from devstrap.core.detection.probes import HostView
from devstrap.core.models.environment import EnvironmentFacts, OSType, PackageManager


def fake_which(*available: str) -> Callable[[str], str | None]:
    """A ``shutil.which`` stand-in that resolves only ``available``."""
    names = set(available)

    def which(name: str) -> str | None:
        return f"/usr/bin/{name}" if name in names else None

    return which


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A throw-away home directory; HOME and Path.home() point at it."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home_dir))
    monkeypatch.delenv("DEVSTRAP_CONFIG", raising=False)
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    monkeypatch.delenv("NVM_DIR", raising=False)
    return home_dir


@pytest.fixture
def make_host(home: Path) -> Callable[..., HostView]:
    """Build a HostView over the temp home with a given set of commands."""

    def _make(*commands: str, environ: dict[str, str] | None = None) -> HostView:
        return HostView(home=home, environ=dict(environ or {}), which=fake_which(*commands))

    return _make


@pytest.fixture
def apt_facts() -> EnvironmentFacts:
    return EnvironmentFacts(os_type=OSType.LINUX, package_manager=PackageManager.APT)


@pytest.fixture
def brew_facts() -> EnvironmentFacts:
    return EnvironmentFacts(os_type=OSType.MACOS, package_manager=PackageManager.BREW)
