import json
import time

import pytest

from vibetap.apply import ApplyHistory, AppliedRecord, load_history, save_history
from vibetap.cli import build_parser, main
from vibetap.hook import PRE_COMMIT_HOOK_MARKER
from vibetap.hush import load_state


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_verbose_before_and_after_subcommand():
    parser = build_parser()
    assert parser.parse_args(["-v", "init"]).verbose is True
    assert parser.parse_args(["init", "--verbose"]).verbose is True
    assert parser.parse_args(["init"]).verbose is False


def test_hush_default_duration():
    args = build_parser().parse_args(["hush"])
    assert args.duration == "30m"
    assert args.status is False
    assert args.clear is False


def test_run_passes_trailing_args():
    args = build_parser().parse_args(["run", "--runner", "pytest", "--", "-x", "-q"])
    assert args.runner == "pytest"
    assert args.args == ["-x", "-q"]
    assert args.all is False


def test_apply_selections_and_flags():
    args = build_parser().parse_args(["apply", "1", "2-3", "-y", "-f"])
    assert args.selections == ["1", "2-3"]
    assert args.yes is True
    assert args.force is True


def test_revert_count_parsed_as_int():
    args = build_parser().parse_args(["revert", "-c", "2", "--all"])
    assert args.count == 2
    assert args.all is True


def test_revert_negative_count_rejected():
    with pytest.raises(SystemExit) as info:
        build_parser().parse_args(["revert", "--count", "-1"])
    assert info.value.code == 2


def test_hook_install_options():
    args = build_parser().parse_args(["hook", "install", "--block", "--security-only"])
    assert args.action == "install"
    assert args.block is True
    assert args.security_only is True


def test_missing_command_is_usage_error():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2


def test_hook_requires_action():
    with pytest.raises(SystemExit) as info:
        main(["hook"])
    assert info.value.code == 2


def test_hush_sets_state(workdir):
    before = int(time.time())
    assert main(["hush", "1h"]) == 0
    state = load_state(workdir)
    assert before + 3600 <= state.hush_until <= int(time.time()) + 3600


def test_hush_clear_and_status(workdir, capsys):
    assert main(["hush", "forever"]) == 0
    assert load_state(workdir).hush_until is None
    assert main(["hush", "--clear"]) == 0
    assert load_state(workdir).hush_until == 0
    capsys.readouterr()
    assert main(["hush", "--status"]) == 0
    assert capsys.readouterr().out.strip() == "Not hushed"


def test_hush_bad_duration_reports_error(workdir, capsys):
    assert main(["hush", "5x"]) == 1
    assert "Invalid duration unit" in capsys.readouterr().err


def test_init_writes_config(workdir):
    (workdir / "Cargo.toml").write_text("[package]\n")
    assert main(["init"]) == 0
    config = json.loads((workdir / ".vibetap" / "config.json").read_text())
    assert config["projectType"] == "rust"
    assert config["version"] == "1.0"


def test_apply_without_suggestions_fails(workdir, capsys):
    assert main(["apply", "1"]) == 1
    assert "No suggestions found" in capsys.readouterr().err


def test_revert_with_empty_history(workdir, capsys):
    assert main(["revert", "-y"]) == 0
    assert "No applied changes to revert." in capsys.readouterr().out


def test_revert_deletes_created_file(workdir):
    target = workdir / "created.test.ts"
    target.write_text("test('x', () => {})\n")
    save_history(
        ApplyHistory(records=[AppliedRecord("s1", "created.test.ts", True, None, 100)])
    )
    assert main(["revert", "--yes"]) == 0
    assert not target.exists()
    assert load_history().records == []


def test_run_without_applied_files(workdir, capsys):
    assert main(["run", "--runner", "pytest"]) == 0
    assert "No applied test files found" in capsys.readouterr().out


def test_hook_install_then_uninstall(workdir):
    (workdir / ".git").mkdir()
    hook_path = workdir / ".git" / "hooks" / "pre-commit"
    assert main(["hook", "install", "--block"]) == 0
    content = hook_path.read_text()
    assert PRE_COMMIT_HOOK_MARKER in content
    assert content.startswith("#!/bin/sh\n")
    assert main(["hook", "uninstall"]) == 0
    assert not hook_path.exists()


def test_hook_status_reports_installed(workdir, capsys):
    (workdir / ".git").mkdir()
    assert main(["hook", "install", "--security-only"]) == 0
    capsys.readouterr()
    assert main(["hook", "status"]) == 0
    out = capsys.readouterr().out
    assert "Installed" in out
    assert "Filter: Security-only" in out
    assert "Mode: Advisory" in out