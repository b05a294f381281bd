"""Silencing suggestions for a while, with the state kept on disk."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import timedelta
from os import PathLike
from pathlib import Path

_STATE_DIR = ".vibetap"
_STATE_FILE = "state.json"
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def _now() -> int:
    return int(time.time())


@dataclass
class HushState:
    """When suggestions resume: None means never, 0 means not hushed."""

    hush_until: int | None = None

    def is_hushed(self, now: int | None = None) -> bool:
        if self.hush_until is None:
            return True
        if self.hush_until == 0:
            return False
        return self.hush_until > (_now() if now is None else now)

    def remaining(self, now: int | None = None) -> str | None:
        """Time left as text such as "45s", "12m" or "2h 5m"."""
        if self.hush_until is None:
            return "forever"
        if self.hush_until == 0:
            return None
        left = self.hush_until - (_now() if now is None else now)
        if left <= 0:
            return None
        if left < 60:
            return f"{left}s"
        if left < 3600:
            return f"{left // 60}m"
        return f"{left // 3600}h {(left % 3600) // 60}m"


def parse_duration(text: str) -> timedelta:
    """Parse durations like "30m", "1h", "2h30m" or "1d"; bare numbers are minutes."""
    total = 0
    digits = ""
    for char in text.strip().lower():
        if char in "0123456789":
            digits += char
            continue
        if not digits:
            continue
        number = int(digits)
        digits = ""
        if char not in _UNIT_SECONDS:
            raise ValueError(f"Invalid duration unit: {char}. Use s, m, h, or d.")
        total += number * _UNIT_SECONDS[char]

    if digits:
        total += int(digits) * 60

    if total == 0:
        raise ValueError("Invalid duration format. Examples: '30m', '1h', '2h30m', '1d'")
    return timedelta(seconds=total)


def _state_path(root: str | PathLike | None) -> Path:
    return Path(root if root is not None else ".") / _STATE_DIR / _STATE_FILE


def load_state(root: str | PathLike | None = None) -> HushState:
    """Read the saved state, or the default state when none is saved."""
    path = _state_path(root)
    if not path.exists():
        return HushState()
    data = json.loads(path.read_text())
    return HushState(hush_until=data.get("hush_until"))


def save_state(state: HushState, root: str | PathLike | None = None) -> None:
    path = _state_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"hush_until": state.hush_until}, indent=2))


def set_hush(duration: str, root: str | PathLike | None = None) -> HushState:
    """Hush for the given duration, or indefinitely for "forever"."""
    if duration.lower() == "forever":
        state = HushState(hush_until=None)
    else:
        seconds = int(parse_duration(duration).total_seconds())
        state = HushState(hush_until=_now() + seconds)
    save_state(state, root)
    return state


def clear_hush(root: str | PathLike | None = None) -> HushState:
    state = HushState(hush_until=0)
    save_state(state, root)
    return state


def execute(args) -> int:
    """Run the hush command from parsed arguments (duration, status, clear)."""
    if getattr(args, "status", False):
        state = load_state()
        remaining = state.remaining() if state.is_hushed() else None
        print(f"Hushed ({remaining})" if remaining is not None else "Not hushed")
        return 0

    if getattr(args, "clear", False):
        clear_hush()
        print("Hush cleared. Suggestions resumed.")
        return 0

    duration = getattr(args, "duration", None) or "30m"
    state = set_hush(duration)
    if duration.lower() == "forever":
        print("Suggestions silenced indefinitely.")
        print("Run vibetap hush --clear to resume.")
    else:
        print(f"Suggestions silenced for {duration}.")
        remaining = state.remaining()
        if remaining is not None:
            print(f"Will resume in {remaining}.")
    return 0