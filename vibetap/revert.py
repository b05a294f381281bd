"""Undoing applied suggestions from the apply history."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .apply import AppliedRecord, ApplyHistory, load_history, save_history


@dataclass
class RevertResult:
    """Records that were undone and messages for those that could not be."""

    reverted: list[AppliedRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def select_records(
    history: ApplyHistory, revert_all: bool = False, count: int | None = None
) -> list[AppliedRecord]:
    """Remove and return the records to undo: all, the last `count`, or the last batch.

    The last batch starts at the first record sharing the newest record's timestamp.
    """
    records = history.records
    if revert_all:
        start = 0
    elif count is not None:
        start = len(records) - min(count, len(records))
    elif records:
        newest = records[-1].applied_at
        start = next(i for i, r in enumerate(records) if r.applied_at == newest)
    else:
        start = 0
    selected = records[start:]
    del records[start:]
    return selected


def revert_records(records: Iterable[AppliedRecord]) -> RevertResult:
    """Delete created files and restore overwritten ones."""
    result = RevertResult()
    for record in records:
        path = Path(record.file_path)
        try:
            if record.created_file:
                if path.exists():
                    path.unlink()
            elif record.original_content is None:
                result.errors.append(f"{record.file_path}: no original content recorded")
                continue
            else:
                path.write_text(record.original_content, encoding="utf-8", newline="")
        except OSError as exc:
            result.errors.append(f"{record.file_path}: {exc}")
            continue
        result.reverted.append(record)
    return result


def _confirm(prompt: str) -> bool:
    try:
        return input(prompt).strip().lower() == "y"
    except EOFError:
        return False


def execute(args) -> int:
    """Run the revert command from parsed arguments (yes, all, count)."""
    history = load_history()
    if not history.records:
        print("No applied changes to revert.")
        return 0

    to_revert = select_records(
        history,
        revert_all=getattr(args, "all", False),
        count=getattr(args, "count", None),
    )
    if not to_revert:
        print("No changes to revert.")
        return 0

    print("\nFiles to revert:")
    for record in to_revert:
        action = "delete" if record.created_file else "restore"
        print(f"  • {record.file_path} ({action})")

    if not getattr(args, "yes", False) and not _confirm(
        f"\nRevert {len(to_revert)} file(s)? [y/N]: "
    ):
        print("Cancelled.")
        return 0

    result = revert_records(to_revert)
    for record in result.reverted:
        action = "deleted" if record.created_file else "restored"
        print(f"  ✓ {record.file_path} ({action})")

    save_history(history)

    if result.errors:
        print("\nErrors:")
        for error in result.errors:
            print(f"  ✗ {error}")

    print(f"\nReverted {len(result.reverted)} file(s).")
    if history.records:
        print(f"{len(history.records)} applied change(s) remaining.")
    return 0