from types import SimpleNamespace

import pytest

from vibetap.gitdiff import NotARepoError
from vibetap.hook import (
    END_MARKER,
    PRE_COMMIT_HOOK_MARKER,
    HookStatus,
    execute,
    find_hooks_dir,
    hook_script,
    hook_status,
    install_hook,
    uninstall_hook,
)


@pytest.fixture
def repo(tmp_path):
    (tmp_path / ".git").mkdir()
    return tmp_path


def test_find_hooks_dir_from_nested_directory(repo):
    nested = repo / "src" / "deep"
    nested.mkdir(parents=True)
    assert find_hooks_dir(nested) == (repo / ".git" / "hooks").absolute()


def test_find_hooks_dir_outside_repository(tmp_path):
    with pytest.raises(NotARepoError):
        find_hooks_dir(tmp_path)


def test_advisory_script_contents():
    script = hook_script(block=False, security_only=False)
    assert PRE_COMMIT_HOOK_MARKER in script
    assert END_MARKER in script
    assert "vibetap generate --staged --quiet || true" in script
    assert "--security" not in script
    assert "exit 1" not in script


def test_blocking_security_script_contents():
    script = hook_script(block=True, security_only=True)
    assert "output=$(vibetap generate --staged --quiet --security 2>&1)" in script
    assert "exit 1" in script
    assert script.startswith("\n")


def test_install_into_empty_hooks_dir(repo):
    hooks = repo / ".git" / "hooks"
    assert install_hook(hooks) is True
    content = (hooks / "pre-commit").read_text()
    assert content == "#!/bin/sh\n" + hook_script()


def test_install_twice_reports_already_installed(repo):
    hooks = repo / ".git" / "hooks"
    install_hook(hooks)
    first = (hooks / "pre-commit").read_text()
    assert install_hook(hooks, block=True) is False
    assert (hooks / "pre-commit").read_text() == first


def test_install_then_uninstall_removes_file(repo):
    hooks = repo / ".git" / "hooks"
    install_hook(hooks, block=True, security_only=True)
    assert uninstall_hook(hooks) is True
    assert not (hooks / "pre-commit").exists()


def test_round_trip_keeps_existing_hook(repo):
    hooks = repo / ".git" / "hooks"
    hooks.mkdir(parents=True)
    original = "#!/bin/bash\necho hi\n"
    (hooks / "pre-commit").write_text(original)
    install_hook(hooks)
    assert (hooks / "pre-commit").read_text().startswith("#!/bin/bash\necho hi\n\n")
    assert uninstall_hook(hooks) is True
    assert (hooks / "pre-commit").read_text() == original


def test_existing_hook_without_shebang_gets_one(repo):
    hooks = repo / ".git" / "hooks"
    hooks.mkdir(parents=True)
    (hooks / "pre-commit").write_text("echo hi\n")
    install_hook(hooks)
    assert (hooks / "pre-commit").read_text().startswith("#!/bin/sh\necho hi\n\n")
    uninstall_hook(hooks)
    assert (hooks / "pre-commit").read_text() == "#!/bin/sh\necho hi\n"


def test_uninstall_without_hook(repo):
    hooks = repo / ".git" / "hooks"
    assert uninstall_hook(hooks) is False


def test_uninstall_foreign_hook_left_untouched(repo):
    hooks = repo / ".git" / "hooks"
    hooks.mkdir(parents=True)
    (hooks / "pre-commit").write_text("#!/bin/sh\necho other\n")
    assert uninstall_hook(hooks) is False
    assert (hooks / "pre-commit").read_text() == "#!/bin/sh\necho other\n"


def test_status_without_hook(repo):
    assert hook_status(repo / ".git" / "hooks") == HookStatus()


def test_status_of_foreign_hook(repo):
    hooks = repo / ".git" / "hooks"
    hooks.mkdir(parents=True)
    (hooks / "pre-commit").write_text("#!/bin/sh\n")
    assert hook_status(hooks) == HookStatus(exists=True)


def test_status_after_security_install(repo):
    hooks = repo / ".git" / "hooks"
    install_hook(hooks, security_only=True)
    status = hook_status(hooks)
    assert status.installed is True
    assert status.security_only is True
    assert status.blocking is False


def test_status_detects_blocking_marker(repo):
    hooks = repo / ".git" / "hooks"
    hooks.mkdir(parents=True)
    (hooks / "pre-commit").write_text(f"#!/bin/sh\n{PRE_COMMIT_HOOK_MARKER}\nexit $result\n")
    assert hook_status(hooks).blocking is True


def test_execute_install_and_status(repo, monkeypatch, capsys):
    monkeypatch.chdir(repo)
    assert execute(SimpleNamespace(action="install", block=True, security_only=True)) == 0
    content = (repo / ".git" / "hooks" / "pre-commit").read_text()
    assert "--security" in content and "exit 1" in content
    capsys.readouterr()
    assert execute(SimpleNamespace(action="status")) == 0
    out = capsys.readouterr().out
    assert "Installed" in out
    assert "Filter: Security-only" in out


def test_execute_status_outside_repo(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert execute(SimpleNamespace(action="status")) == 0
    assert "Not a git repository." in capsys.readouterr().out


def test_execute_install_outside_repo(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(NotARepoError):
        execute(SimpleNamespace(action="install", block=False, security_only=False))