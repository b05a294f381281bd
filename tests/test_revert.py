from pathlib import Path
from types import SimpleNamespace

from vibetap.apply import AppliedRecord, ApplyHistory, load_history, save_history
from vibetap.revert import RevertResult, execute, revert_records, select_records


def _record(idx, path="f.ts", created=True, original=None, at=0):
    return AppliedRecord(f"s{idx}", path, created, original, at)


def _history():
    return ApplyHistory(
        records=[_record(1, at=10), _record(2, at=20), _record(3, at=20)]
    )


def test_select_last_batch():
    history = _history()
    selected = select_records(history)
    assert [r.suggestion_id for r in selected] == ["s2", "s3"]
    assert [r.suggestion_id for r in history.records] == ["s1"]


def test_select_last_batch_starts_at_first_matching_timestamp():
    history = ApplyHistory(records=[_record(1, at=5), _record(2, at=9), _record(3, at=5)])
    selected = select_records(history)
    assert [r.suggestion_id for r in selected] == ["s1", "s2", "s3"]
    assert history.records == []


def test_select_all():
    history = _history()
    original = list(history.records)
    assert select_records(history, revert_all=True) == original
    assert history.records == []


def test_select_count_is_capped():
    history = _history()
    assert [r.suggestion_id for r in select_records(history, count=1)] == ["s3"]
    assert len(select_records(history, count=99)) == 2
    assert history.records == []


def test_select_zero_count_selects_nothing():
    history = _history()
    assert select_records(history, count=0) == []
    assert len(history.records) == 3


def test_revert_deletes_created_and_restores_overwritten(tmp_path):
    created = tmp_path / "new.ts"
    created.write_text("generated")
    changed = tmp_path / "old.ts"
    changed.write_text("generated")
    records = [
        _record(1, str(created), created=True),
        _record(2, str(changed), created=False, original="before\n"),
    ]
    result = revert_records(records)
    assert result == RevertResult(reverted=records, errors=[])
    assert not created.exists()
    assert changed.read_text() == "before\n"


def test_revert_missing_created_file_counts_as_reverted(tmp_path):
    record = _record(1, str(tmp_path / "absent.ts"), created=True)
    assert revert_records([record]).reverted == [record]


def test_revert_without_original_content_is_an_error(tmp_path):
    path = tmp_path / "x.ts"
    path.write_text("generated")
    result = revert_records([_record(1, str(path), created=False, original=None)])
    assert result.reverted == []
    assert result.errors == [f"{path}: no original content recorded"]
    assert path.read_text() == "generated"


def test_execute_reverts_last_batch(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("a.ts").write_text("a")
    Path("b.ts").write_text("b")
    save_history(
        ApplyHistory(records=[_record(1, "a.ts", at=1), _record(2, "b.ts", at=2)])
    )
    assert execute(SimpleNamespace(yes=True, all=False, count=None)) == 0
    assert Path("a.ts").exists()
    assert not Path("b.ts").exists()
    assert [r.suggestion_id for r in load_history().records] == ["s1"]


def test_execute_cancel_keeps_files_and_history(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("a.ts").write_text("a")
    history = ApplyHistory(records=[_record(1, "a.ts", at=1)])
    save_history(history)
    monkeypatch.setattr("builtins.input", lambda prompt="": "no")
    execute(SimpleNamespace(yes=False, all=True, count=None))
    assert Path("a.ts").read_text() == "a"
    assert load_history() == history


def test_execute_with_empty_history_changes_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert execute(SimpleNamespace(yes=True, all=True, count=None)) == 0
    assert not (tmp_path / ".vibetap").exists()