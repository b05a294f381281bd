"""Writing chosen suggestions to disk and keeping a history for reverting them."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any, Iterable

from .api import TestSuggestion
from .generate import SavedSuggestions, compute_hash, load_suggestions, print_code_block

HISTORY_DIR = ".vibetap"
HISTORY_FILE = "history.json"

_SEPARATORS = re.compile(r"[, ]")
_NUMBER = re.compile(r"\+?[0-9]+")


@dataclass
class AppliedRecord:
    """What an applied suggestion changed, so that it can be undone."""

    suggestion_id: str
    file_path: str
    created_file: bool
    original_content: str | None = None
    applied_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestion_id": self.suggestion_id,
            "file_path": self.file_path,
            "created_file": self.created_file,
            "original_content": self.original_content,
            "applied_at": self.applied_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> AppliedRecord:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        for key in ("suggestion_id", "file_path", "created_file", "applied_at"):
            if key not in data:
                raise ValueError(f"missing field `{key}`")
        original = data.get("original_content")
        checks = (
            isinstance(data["suggestion_id"], str),
            isinstance(data["file_path"], str),
            isinstance(data["created_file"], bool),
            original is None or isinstance(original, str),
            isinstance(data["applied_at"], int) and not isinstance(data["applied_at"], bool),
        )
        if not all(checks):
            raise ValueError("invalid type in applied record")
        return cls(
            suggestion_id=data["suggestion_id"],
            file_path=data["file_path"],
            created_file=data["created_file"],
            original_content=original,
            applied_at=data["applied_at"],
        )


@dataclass
class ApplyHistory:
    """Every applied suggestion, oldest first."""

    records: list[AppliedRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"records": [record.to_dict() for record in self.records]}

    @classmethod
    def from_dict(cls, data: Any) -> ApplyHistory:
        if not isinstance(data, dict) or "records" not in data:
            raise ValueError("missing field `records`")
        if not isinstance(data["records"], list):
            raise ValueError("invalid type for field `records`")
        return cls(records=[AppliedRecord.from_dict(item) for item in data["records"]])


def _parse_number(text: str) -> int | None:
    text = text.strip()
    return int(text) if _NUMBER.fullmatch(text) else None


def parse_selections(inputs: Iterable[str], max_index: int) -> list[int]:
    """Turn "1 2", "1,3", "2-4" or "all" into sorted zero-based indices.

    Raises ValueError for anything that is not a valid choice between 1 and max_index.
    """
    chosen: set[int] = set()
    everything = list(range(max_index))

    for text in inputs:
        if text.lower() == "all":
            return everything
        for part in (piece.strip() for piece in _SEPARATORS.split(text)):
            if not part:
                continue
            if part.lower() == "all":
                return everything
            if "-" in part:
                low_text, high_text = part.split("-", 1)
                low, high = _parse_number(low_text), _parse_number(high_text)
                if low is None or high is None:
                    raise ValueError(f"Invalid number in range: {part}")
                if low == 0 or high == 0 or low > max_index or high > max_index:
                    raise ValueError(f"Invalid range: {part}. Choose 1-{max_index}.")
                chosen.update(range(low - 1, high))
            else:
                number = _parse_number(part) if part == part.strip() else None
                if number is None:
                    raise ValueError(
                        f"Invalid selection: '{part}'. Use numbers, ranges (1-3), or 'all'."
                    )
                if number == 0 or number > max_index:
                    raise ValueError(f"Invalid number: {number}. Choose 1-{max_index}.")
                chosen.add(number - 1)

    return sorted(chosen)


def check_file_changes(saved: SavedSuggestions) -> list[str]:
    """Source files whose content differs from when the suggestions were made."""
    changed = []
    for path, old_hash in saved.source_files.items():
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            changed.append(f"{path} (deleted or unreadable)")
            continue
        if compute_hash(content) != old_hash:
            changed.append(path)
    return changed


def _history_path(root: str | PathLike | None) -> Path:
    return Path(root if root is not None else ".") / HISTORY_DIR / HISTORY_FILE


def load_history(root: str | PathLike | None = None) -> ApplyHistory:
    """Read the apply history, or an empty one when none is saved."""
    path = _history_path(root)
    if not path.exists():
        return ApplyHistory()
    return ApplyHistory.from_dict(json.loads(path.read_text(encoding="utf-8")))


def save_history(history: ApplyHistory, root: str | PathLike | None = None) -> None:
    path = _history_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(history.to_dict(), indent=2), encoding="utf-8")


def _read_exact(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


def apply_suggestions(
    suggestions: Iterable[TestSuggestion], now: int | None = None
) -> list[AppliedRecord]:
    """Write each suggestion's code to its file and return what was changed."""
    stamp = int(time.time()) if now is None else now
    records = []
    for suggestion in suggestions:
        path = Path(suggestion.file_path)
        if path.exists():
            created, original = False, _read_exact(path)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            created, original = True, None
        path.write_text(suggestion.code, encoding="utf-8", newline="")
        records.append(
            AppliedRecord(
                suggestion_id=suggestion.id,
                file_path=suggestion.file_path,
                created_file=created,
                original_content=original,
                applied_at=stamp,
            )
        )
    return records


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except EOFError:
        return ""


def _confirm(prompt: str) -> bool:
    return _ask(prompt).strip().lower() == "y"


def execute(args) -> int:
    """Run the apply command from parsed arguments (selections, yes, force)."""
    saved = load_suggestions()
    suggestions = saved.response.suggestions
    yes = getattr(args, "yes", False)

    if not suggestions:
        print("No suggestions to apply.")
        return 0

    if not getattr(args, "force", False) and saved.source_files:
        changed = check_file_changes(saved)
        if changed:
            print("\n⚠ Source files have changed since suggestions were generated:")
            for name in changed:
                print(f"  • {name}")
            print()
            print("The suggestions may be outdated or cause conflicts.")
            print("Options:")
            print("  vibetap generate - Re-generate with current changes")
            print("  vibetap apply --force - Apply anyway")
            if yes:
                print("Use --force to bypass this check.")
                return 0
            if not _confirm("\nApply anyway? [y/N]: "):
                print("Cancelled. Run 'vibetap generate' to regenerate.")
                return 0

    selections = list(getattr(args, "selections", None) or [])
    if selections:
        chosen = parse_selections(selections, len(suggestions))
    else:
        print("\nAvailable suggestions:")
        for number, suggestion in enumerate(suggestions, start=1):
            print(f"  {number}. {suggestion.file_path} ({suggestion.category})")
        print()
        answer = _ask("Enter suggestion number(s) to apply (e.g., 1 or 1,2,3 or all): ")
        chosen = parse_selections([answer.strip()], len(suggestions))

    if not chosen:
        print("No suggestions selected.")
        return 0

    picked = [suggestions[index] for index in chosen]
    for suggestion in picked:
        print(f"\n─── {suggestion.file_path} ───")
        print(suggestion.description)
        print()
        print_code_block(suggestion.code, suggestion.file_path)

    if not yes and not _confirm(f"\nApply {len(picked)} suggestion(s)? [y/N]: "):
        print("Cancelled.")
        return 0

    history = load_history()
    records = apply_suggestions(picked)
    for record in records:
        print(f"  ✓ {record.file_path}")
    history.records.extend(records)
    save_history(history)

    print(f"\nApplied {len(records)} suggestion(s)!")
    print("\nRun vibetap run to execute the generated tests.")
    print("Run vibetap revert to undo if needed.")
    return 0