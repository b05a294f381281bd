"""Reading staged and uncommitted changes from a git repository."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from os import PathLike

_HUNK_RE = re.compile(rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_ESCAPE_RE = re.compile(rb"\\([0-7]{3}|.)", re.S)
_ESCAPES = {
    b"a": b"\a",
    b"b": b"\b",
    b"t": b"\t",
    b"n": b"\n",
    b"v": b"\v",
    b"f": b"\f",
    b"r": b"\r",
    b'"': b'"',
    b"\\": b"\\",
}
_DIFF_FLAGS = [
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
    "--no-renames",
    "-U3",
    "--src-prefix=a/",
    "--dst-prefix=b/",
]
_INDEX_CHANGES = frozenset("AMDRT")
_UNMERGED = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class GitError(Exception):
    """A git operation failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Git error: {message}")


class NotARepoError(GitError):
    def __init__(self) -> None:
        Exception.__init__(self, "Not a git repository")


class NoStagedChangesError(GitError):
    def __init__(self) -> None:
        Exception.__init__(self, "No staged changes")


@dataclass
class DiffHunk:
    """A hunk of a diff with its lines prefixed by their origin."""

    file_path: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str = ""


@dataclass
class StagedDiff:
    hunks: list[DiffHunk] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)


def _unquote(quoted: bytes) -> bytes:
    def replace(match: re.Match) -> bytes:
        token = match.group(1)
        if len(token) == 3:
            return bytes([int(token, 8) & 0xFF])
        return _ESCAPES.get(token, token)

    return _ESCAPE_RE.sub(replace, quoted[1:-1])


def _to_str(raw: bytes) -> str:
    return raw.decode("utf-8", "replace")


def _header_path(raw: bytes, prefix: bytes) -> bytes:
    if raw.startswith(b'"') and raw.endswith(b'"') and len(raw) > 1:
        raw = _unquote(raw)
    return raw[len(prefix):] if raw.startswith(prefix) else raw


def _diff_git_path(rest: bytes) -> str:
    if rest.endswith(b'"'):
        start = rest.rfind(b' "')
        if start != -1:
            return _to_str(_header_path(rest[start + 1:], b"b/"))
    if len(rest) % 2 == 1:
        half = len(rest) // 2
        left, right = rest[:half], rest[half + 1:]
        if (
            rest[half:half + 1] == b" "
            and left.startswith(b"a/")
            and right.startswith(b"b/")
            and left[2:] == right[2:]
        ):
            return _to_str(right[2:])
    idx = rest.rfind(b" b/")
    return _to_str(rest[idx + 3:] if idx != -1 else rest)


def parse_patch(text: str | bytes) -> StagedDiff:
    """Split a unified git patch into hunks and the list of files it touches.

    Raises NoStagedChangesError when the patch holds no hunks.
    """
    data = text.encode("utf-8", "surrogateescape") if isinstance(text, str) else text
    hunks: list[DiffHunk] = []
    files: list[str] = []
    current = ""
    old_left = new_left = 0
    last_appended = False

    for raw in data.split(b"\n"):
        if raw.startswith(b"\\"):
            if last_appended and hunks[-1].content.endswith("\n"):
                hunks[-1].content = hunks[-1].content[:-1]
            last_appended = False
            continue

        if old_left > 0 or new_left > 0:
            origin = raw[:1] or b" "
            if origin in (b"+", b"-", b" "):
                if origin != b"+":
                    old_left -= 1
                if origin != b"-":
                    new_left -= 1
                try:
                    line = raw[1:].decode("utf-8")
                except UnicodeDecodeError:
                    last_appended = False
                    continue
                hunks[-1].content += origin.decode() + line + "\n"
                last_appended = True
                continue
            old_left = new_left = 0

        last_appended = False
        if raw.startswith(b"diff --git "):
            current = _diff_git_path(raw[len(b"diff --git "):])
            if current not in files:
                files.append(current)
        elif raw.startswith(b"+++ "):
            target = raw[4:]
            if target != b"/dev/null":
                path = _to_str(_header_path(target, b"b/"))
                if path != current:
                    if files and files[-1] == current:
                        files.pop()
                    if path not in files:
                        files.append(path)
                    current = path
        elif raw.startswith(b"@@"):
            match = _HUNK_RE.match(raw)
            if match:
                old_start, old_count, new_start, new_count = match.groups()
                old_lines = int(old_count) if old_count is not None else 1
                new_lines = int(new_count) if new_count is not None else 1
                hunks.append(
                    DiffHunk(current, int(old_start), old_lines, int(new_start), new_lines)
                )
                old_left, new_left = old_lines, new_lines

    if not hunks:
        raise NoStagedChangesError()
    return StagedDiff(hunks=hunks, files_changed=files)


def _git(args: list[str], cwd: str | PathLike | None) -> bytes:
    try:
        proc = subprocess.run(
            ["git", "-c", "core.quotepath=false", *args],
            cwd=cwd,
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise GitError(f"could not run git: {exc}") from exc
    if proc.returncode != 0:
        message = proc.stderr.decode("utf-8", "replace").strip()
        raise GitError(message or f"git {args[0]} exited with status {proc.returncode}")
    return proc.stdout


def _open_repo(cwd: str | PathLike | None) -> None:
    try:
        _git(["rev-parse", "--git-dir"], cwd)
    except GitError as exc:
        raise NotARepoError() from exc


def _require_head(cwd: str | PathLike | None) -> None:
    try:
        _git(["rev-parse", "--verify", "--quiet", "HEAD^{commit}"], cwd)
    except GitError as exc:
        raise GitError("reference 'HEAD' does not point to a commit") from exc


def get_staged_diff(cwd: str | PathLike | None = None) -> StagedDiff:
    """Diff between HEAD and the index."""
    _open_repo(cwd)
    _require_head(cwd)
    return parse_patch(_git(["diff", "--cached", *_DIFF_FLAGS, "HEAD", "--"], cwd))


def get_uncommitted_diff(cwd: str | PathLike | None = None) -> StagedDiff:
    """Diff between HEAD and the working tree, staged and unstaged alike.

    Untracked files are listed among the changed files but bring no hunks.
    """
    _open_repo(cwd)
    _require_head(cwd)
    diff = parse_patch(_git(["diff", *_DIFF_FLAGS, "HEAD", "--"], cwd))
    listing = _git(
        ["ls-files", "--others", "--exclude-standard", "--directory", "--no-empty-directory", "-z"],
        cwd,
    )
    untracked = {_to_str(entry) for entry in listing.split(b"\0") if entry}
    if untracked:
        diff.files_changed = sorted(set(diff.files_changed) | untracked)
    return diff


def has_staged_changes(cwd: str | PathLike | None = None) -> bool:
    """Whether the index differs from HEAD."""
    _open_repo(cwd)
    output = _git(["status", "--porcelain=v1", "-z", "--untracked-files=no"], cwd)
    entries = iter(output.split(b"\0"))
    for entry in entries:
        if len(entry) < 3:
            continue
        status = entry[:2].decode("ascii", "replace")
        if status[0] in "RC":
            next(entries, None)
        if status in _UNMERGED:
            continue
        if status[0] in _INDEX_CHANGES:
            return True
    return False