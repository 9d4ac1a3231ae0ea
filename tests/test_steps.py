"""
Tests for the step programs — file handling and exit codes.

Nothing here installs packages or touches the network: package-manager
and command calls are replaced with recorders.
"""

import json
from pathlib import Path

import pytest

from devstrap.adapters.shell.command import CommandResult
from devstrap.core.errors import CommandError, StepError
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.services.zshrc import ALIAS_BLOCK, PLUGINS_LINE
from devstrap.steps import _common, cli_tools, micro, nvm, tmux, zsh


@pytest.fixture
def console() -> TaggedConsole:
    return TaggedConsole("[test]", quiet=True)


class CommandRecorder:
    """Stands in for ``run_command``: records calls, replays scripted output.

    ``outputs`` maps an argv prefix (tuple) to stdout; ``failing`` lists
    argv prefixes that raise CommandError.
    """

    def __init__(self, outputs: dict | None = None, failing: tuple = ()):
        self.outputs = outputs or {}
        self.failing = failing
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, argv, **kwargs) -> CommandResult:
        argv = list(argv)
        self.calls.append((argv, kwargs))
        for prefix in self.failing:
            if tuple(argv[: len(prefix)]) == prefix:
                raise CommandError(argv, 1)
        stdout = next(
            (out for prefix, out in self.outputs.items() if tuple(argv[: len(prefix)]) == prefix),
            "",
        )
        return CommandResult(argv=argv, returncode=0, stdout=stdout)

    @property
    def argvs(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]


# ── step_main ────────────────────────────────────────────────────────


class TestStepMain:
    @pytest.fixture(autouse=True)
    def _facts_from_env(self, monkeypatch, apt_facts):
        monkeypatch.setattr(_common, "resolve_facts", lambda: apt_facts)
        monkeypatch.setattr(_common, "setup_logging", lambda: None)

    def test_success(self):
        calls = []
        assert _common.step_main("[t]", lambda f, c: calls.append(f), []) == 0
        assert len(calls) == 1

    def test_step_error_exits_one(self, capsys):
        def install(facts, console):
            raise StepError("Missing required command: curl")

        assert _common.step_main("[zsh-setup]", install, []) == 1
        assert "[zsh-setup] ERROR: Missing required command: curl" in capsys.readouterr().err

    def test_command_error_exits_one(self):
        def install(facts, console):
            raise CommandError(["apt-get", "install", "-y", "tmux"], 100)

        assert _common.step_main("[t]", install, []) == 1

    def test_uninstall_dispatch(self):
        calls = []
        rc = _common.step_main(
            "[t]",
            lambda f, c: calls.append("install"),
            ["uninstall"],
            uninstall=lambda f, c: calls.append("uninstall"),
        )
        assert rc == 0
        assert calls == ["uninstall"]

    def test_unexpected_arguments(self):
        assert _common.step_main("[t]", lambda f, c: None, ["uninstall"]) == 2
        assert _common.step_main("[t]", lambda f, c: None, ["--force"], uninstall=lambda f, c: None) == 2


# ── zsh ──────────────────────────────────────────────────────────────


class TestZshStep:
    def test_configure_fresh_zshrc(self, tmp_path):
        zshrc = tmp_path / ".zshrc"
        update = zsh.configure_zshrc(zshrc)
        text = zshrc.read_text()
        assert update.changed and update.backup is None
        assert PLUGINS_LINE in text
        assert text.count(ALIAS_BLOCK.start) == 1

    def test_single_backup_then_noop(self, tmp_path):
        zshrc = tmp_path / ".zshrc"
        zshrc.write_text('plugins=(git)\nsource "$ZSH/oh-my-zsh.sh"\n')

        first = zsh.configure_zshrc(zshrc)
        content = zshrc.read_text()
        second = zsh.configure_zshrc(zshrc)

        assert first.changed and first.backup is not None
        assert first.backup.read_text() == 'plugins=(git)\nsource "$ZSH/oh-my-zsh.sh"\n'
        assert not second.changed
        assert zshrc.read_text() == content
        assert len(list(tmp_path.glob(".zshrc.bak-*"))) == 1

    def test_plugins_cloned_only_when_missing(self, tmp_path, monkeypatch, console):
        (tmp_path / "zsh-autosuggestions").mkdir()
        cloned = []
        monkeypatch.setattr(zsh, "run_command", lambda argv, **kw: cloned.append(argv))
        zsh.install_plugins(tmp_path, console)
        assert cloned == [[
            "git", "clone",
            zsh.PLUGIN_REPOS["zsh-syntax-highlighting"],
            str(tmp_path / "zsh-syntax-highlighting"),
        ]]

    def test_oh_my_zsh_skipped_when_present(self, tmp_path, monkeypatch, console):
        (tmp_path / ".oh-my-zsh").mkdir()
        recorder = CommandRecorder()
        monkeypatch.setattr(zsh, "run_command", recorder)
        zsh.install_oh_my_zsh(tmp_path, console)
        assert recorder.calls == []

    def test_oh_my_zsh_installer_does_not_start_zsh(self, tmp_path, monkeypatch, console):
        recorder = CommandRecorder(outputs={("curl",): "echo installing"})
        monkeypatch.setattr(zsh, "run_command", recorder)
        zsh.install_oh_my_zsh(tmp_path, console)

        (curl, curl_kw), (sh, sh_kw) = recorder.calls
        assert curl == ["curl", "-fsSL", zsh.OH_MY_ZSH_INSTALLER]
        assert curl_kw["capture"] is True
        assert sh == ["sh", "-c", "echo installing"]
        assert sh_kw["env_overrides"] == {"RUNZSH": "no"}


# ── nvm ──────────────────────────────────────────────────────────────


class TestNvmStep:
    @pytest.fixture(autouse=True)
    def _no_lookup(self, monkeypatch):
        monkeypatch.setattr(nvm, "require_command", lambda name: None)

    def _nvm_sh(self, home: Path) -> Path:
        nvm_sh = home / ".nvm" / "nvm.sh"
        nvm_sh.parent.mkdir()
        nvm_sh.write_text("# nvm\n")
        return nvm_sh

    def test_existing_nvm_skips_installer(self, home, monkeypatch, console, apt_facts):
        self._nvm_sh(home)
        recorder = CommandRecorder(outputs={("bash", "-c"): "v20.11.0\n"})
        monkeypatch.setattr(nvm, "run_command", recorder)

        nvm.install(apt_facts, console)

        assert all(argv[0] != "curl" for argv in recorder.argvs)
        scripts = [argv[2] for argv in recorder.argvs]
        assert "nvm install --lts" in scripts[0]
        assert "nvm alias default 'lts/*'" in scripts[0]
        assert scripts[1].endswith("nvm version default")
        assert recorder.calls[0][1]["env_overrides"] == {"NVM_DIR": str(home / ".nvm")}

    @pytest.mark.parametrize("version", ["N/A", ""])
    def test_no_default_version_is_fatal(self, home, monkeypatch, console, apt_facts, version):
        self._nvm_sh(home)
        monkeypatch.setattr(nvm, "run_command", CommandRecorder(outputs={("bash", "-c"): version}))
        with pytest.raises(StepError, match="default Node version"):
            nvm.install(apt_facts, console)

    def test_missing_nvm_sh_after_install(self, home, monkeypatch, console, apt_facts):
        recorder = CommandRecorder(outputs={("curl",): "#!/usr/bin/env bash\n"})
        monkeypatch.setattr(nvm, "run_command", recorder)

        with pytest.raises(StepError, match="NVM not found"):
            nvm.install(apt_facts, console)

        (curl, _), (bash, bash_kw) = recorder.calls
        assert curl == ["curl", "-fsSL", nvm.NVM_INSTALLER]
        assert bash == ["bash"]
        assert bash_kw["input_text"] == "#!/usr/bin/env bash\n"
        assert bash_kw["env_overrides"] == {"NVM_DIR": str(home / ".nvm")}


# ── cli-tools ────────────────────────────────────────────────────────


class TestCliToolsStep:
    def test_links_debian_names(self, tmp_path, monkeypatch, console):
        available = {"fdfind": "/usr/bin/fdfind", "batcat": "/usr/bin/batcat"}
        monkeypatch.setattr(cli_tools.shutil, "which", lambda name: available.get(name))
        links = cli_tools.link_debian_names(tmp_path / "bin", console)
        assert sorted(p.name for p in links) == ["bat", "fd"]
        assert (tmp_path / "bin" / "fd").readlink() == Path("/usr/bin/fdfind")

    def test_keeps_existing_short_names(self, tmp_path, monkeypatch, console):
        available = {"fdfind": "/usr/bin/fdfind", "fd": "/usr/local/bin/fd"}
        monkeypatch.setattr(cli_tools.shutil, "which", lambda name: available.get(name))
        assert cli_tools.link_debian_names(tmp_path / "bin", console) == []

    def test_package_list(self):
        assert cli_tools.TOOLS == ["ripgrep", "fd", "fzf", "jq", "yq", "bat", "zoxide", "delta"]


# ── micro ────────────────────────────────────────────────────────────


class TestMicroSettings:
    def test_merge_into_empty(self):
        data = json.loads(micro.merge_settings(""))
        assert data == micro.LSP_SETTINGS

    def test_merge_keeps_user_keys(self):
        data = json.loads(micro.merge_settings('{"tabsize": 2, "lsp.tabcompletion": false}'))
        assert data["tabsize"] == 2
        assert data["lsp.tabcompletion"] is True

    def test_invalid_json_is_fatal(self):
        with pytest.raises(StepError, match="Failed to parse"):
            micro.merge_settings("{not json")

    def test_non_object_is_fatal(self):
        with pytest.raises(StepError, match="JSON object"):
            micro.merge_settings("[1, 2]")

    def test_configure_backs_up_and_is_idempotent(self, tmp_path):
        settings = tmp_path / "settings.json"
        settings.write_text('{"colorscheme": "monokai"}')

        first = micro.configure_settings(settings)
        second = micro.configure_settings(settings)

        assert first.changed and first.backup.read_text() == '{"colorscheme": "monokai"}'
        assert not second.changed
        assert json.loads(settings.read_text())["colorscheme"] == "monokai"

    def test_invalid_settings_left_untouched(self, tmp_path):
        settings = tmp_path / "settings.json"
        settings.write_text("{oops")
        with pytest.raises(StepError):
            micro.configure_settings(settings)
        assert settings.read_text() == "{oops"
        assert list(tmp_path.glob("settings.json.bak-*")) == []


class TestMicroPath:
    def test_adds_block(self, tmp_path):
        bin_dir = tmp_path / "npm" / "bin"
        bin_dir.mkdir(parents=True)
        profile = tmp_path / ".profile"

        update = micro.ensure_on_path(bin_dir, profile, "/usr/bin")
        assert update.changed
        assert f'export PATH="{bin_dir}:$PATH"' in profile.read_text()

        again = micro.ensure_on_path(bin_dir, profile, "/usr/bin")
        assert not again.changed
        assert profile.read_text().count(micro.NPM_PATH_BLOCK.start) == 1

    def test_already_on_path(self, tmp_path):
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        assert micro.ensure_on_path(bin_dir, tmp_path / ".profile", f"/usr/bin:{bin_dir}") is None

    def test_missing_dir(self, tmp_path):
        assert micro.ensure_on_path(tmp_path / "nope", tmp_path / ".profile", "") is None

    def test_npm_retries_with_sudo(self, monkeypatch, console):
        calls = []

        def run(argv, sudo=False, **kw):
            calls.append(sudo)
            if not sudo:
                raise CommandError(argv, 243, "EACCES")

        monkeypatch.setattr(micro, "run_command", run)
        monkeypatch.setattr(micro, "command_exists", lambda name: True)
        micro.npm_global_install("typescript", console)
        assert calls == [False, True]

    def test_npm_without_sudo_fails(self, monkeypatch, console):
        def run(argv, **kw):
            raise CommandError(argv, 243, "EACCES")

        monkeypatch.setattr(micro, "run_command", run)
        monkeypatch.setattr(micro, "command_exists", lambda name: False)
        with pytest.raises(StepError, match="sudo is unavailable"):
            micro.npm_global_install("typescript", console)


class TestMicroPlugin:
    @pytest.fixture(autouse=True)
    def _no_lookup(self, monkeypatch):
        monkeypatch.setattr(micro, "require_command", lambda name: None)

    def test_plugin_command_used_first(self, tmp_path, monkeypatch, console):
        recorder = CommandRecorder()
        monkeypatch.setattr(micro, "run_command", recorder)
        micro.install_lsp_plugin(tmp_path / "plug", console)
        assert recorder.argvs == [["micro", "-plugin", "install", "lsp"]]

    def test_fallback_pulls_existing_checkout(self, tmp_path, monkeypatch, console):
        target = tmp_path / "plug" / "lsp"
        (target / ".git").mkdir(parents=True)
        recorder = CommandRecorder(failing=(("micro",),))
        monkeypatch.setattr(micro, "run_command", recorder)

        micro.install_lsp_plugin(tmp_path / "plug", console)

        assert recorder.argvs[-1] == ["git", "-C", str(target), "pull", "--ff-only"]
        assert (target / ".git").is_dir()

    def test_fallback_replaces_stray_dir_with_clone(self, tmp_path, monkeypatch, console):
        target = tmp_path / "plug" / "lsp"
        target.mkdir(parents=True)
        (target / "leftover.lua").write_text("--")
        recorder = CommandRecorder(failing=(("micro",),))
        monkeypatch.setattr(micro, "run_command", recorder)

        micro.install_lsp_plugin(tmp_path / "plug", console)

        assert recorder.argvs[-1] == ["git", "clone", micro.LSP_PLUGIN_REPO, str(target)]
        assert not target.exists()


class TestMicroUninstall:
    def test_removes_plugin_and_path_block(self, home, monkeypatch, console, apt_facts):
        config_dir = micro.micro_config_dir(home)
        plugin = config_dir / "plug" / "lsp"
        plugin.mkdir(parents=True)
        settings = config_dir / "settings.json"
        settings.write_text('{"lsp.tabcompletion": true}\n')
        profile = home / ".profile"
        profile.write_text(
            "export EDITOR=micro\n"
            + micro.NPM_PATH_BLOCK.render('export PATH="/opt/npm/bin:$PATH"')
        )
        monkeypatch.setattr(micro.click, "confirm", lambda *a, **k: False)

        micro.uninstall(apt_facts, console)

        assert not plugin.exists()
        assert profile.read_text() == "export EDITOR=micro\n"
        assert settings.read_text() == '{"lsp.tabcompletion": true}\n'

    def test_package_removal_failure_warns(self, home, monkeypatch, capsys, apt_facts):
        monkeypatch.setattr(micro.click, "confirm", lambda *a, **k: True)
        monkeypatch.setattr(micro, "remove_packages", lambda facts, tools: False)

        micro.uninstall(apt_facts, TaggedConsole("[micro-setup]"))

        assert "WARNING: micro could not be removed" in capsys.readouterr().err


# ── tmux ─────────────────────────────────────────────────────────────


class TestTmuxStep:
    def test_fresh_config(self, tmp_path, console):
        path = tmp_path / ".tmux.conf"
        assert tmux.write_config(path, console) is None
        assert path.read_text() == tmux.TMUX_CONF

    def test_existing_config_moved_aside(self, tmp_path, console):
        path = tmp_path / ".tmux.conf"
        path.write_text("set -g prefix C-a\n")
        backup = tmux.write_config(path, console)
        assert backup.name.startswith(".tmux.conf.bak-")
        assert backup.read_text() == "set -g prefix C-a\n"
        assert path.read_text() == tmux.TMUX_CONF

    def test_rewrite_keeps_mode(self, tmp_path, console):
        path = tmp_path / ".tmux.conf"
        path.write_text("set -g prefix C-a\n")
        path.chmod(0o644)
        backup = tmux.write_config(path, console)
        assert path.stat().st_mode & 0o777 == 0o644
        assert backup.stat().st_mode & 0o777 == 0o644

    def test_identical_config_untouched(self, tmp_path, console):
        path = tmp_path / ".tmux.conf"
        path.write_text(tmux.TMUX_CONF)
        assert tmux.write_config(path, console) is None
        assert list(tmp_path.iterdir()) == [path]

    def test_refuses_root(self, console):
        from devstrap.core.errors import RootUserError
        from devstrap.core.models.environment import EnvironmentFacts, OSType, PackageManager

        facts = EnvironmentFacts(os_type=OSType.LINUX, package_manager=PackageManager.APT, is_root=True)
        with pytest.raises(RootUserError):
            tmux.install(facts, console)

    def test_uninstall_keeps_backups(self, home, monkeypatch, console, apt_facts):
        (home / ".tmux.conf").write_text(tmux.TMUX_CONF)
        (home / ".tmux.conf.bak-20240101-000000").write_text("old")
        (home / ".tmux").mkdir()
        answers = iter([True, False])
        monkeypatch.setattr(tmux.click, "confirm", lambda *a, **k: next(answers))
        monkeypatch.setattr(tmux, "require_command", lambda name: None)

        tmux.uninstall(apt_facts, console)

        assert not (home / ".tmux.conf").exists()
        assert not (home / ".tmux").exists()
        assert (home / ".tmux.conf.bak-20240101-000000").exists()

    def test_uninstall_removal_failure_warns(self, home, monkeypatch, capsys, apt_facts):
        answers = iter([True, True])
        monkeypatch.setattr(tmux.click, "confirm", lambda *a, **k: next(answers))
        monkeypatch.setattr(tmux, "require_command", lambda name: None)
        monkeypatch.setattr(tmux, "remove_packages", lambda facts, tools: False)

        tmux.uninstall(apt_facts, TaggedConsole("[tmux-setup]"))
        assert "WARNING: tmux could not be removed" in capsys.readouterr().err
