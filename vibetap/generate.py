"""Building generation requests and keeping the last suggestions on disk."""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any, Iterable

from pygments import highlight
from pygments.formatters import TerminalTrueColorFormatter
from pygments.lexers import TextLexer, TypeScriptLexer, get_lexer_for_filename
from pygments.util import ClassNotFound

from .api import (
    DiffHunk as ApiDiffHunk,
    DiffPayload,
    FileContext,
    GenerateOptions,
    GenerateRequest,
    GenerateResponse,
)
from .gitdiff import StagedDiff

DEFAULT_TEST_RUNNER = "vitest"
MAX_CONTEXT_CHARS = 50000
MAX_CONTEXT_FILES = 10
SUGGESTIONS_DIR = ".vibetap"
SUGGESTIONS_FILE = "last-suggestions.json"

_LANGUAGES = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "rs": "rust",
    "go": "go",
    "java": "java",
    "rb": "ruby",
    "php": "php",
    "cs": "csharp",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "c": "c",
    "h": "c",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "md": "markdown",
    "sql": "sql",
    "sh": "shell",
    "bash": "shell",
    "css": "css",
    "scss": "scss",
    "sass": "scss",
    "html": "html",
    "htm": "html",
}

_CATEGORIES = {
    "unit": "Unit test",
    "integration": "Integration test",
    "security": "Security test",
    "edge_case": "Edge case test",
    "regression": "Regression test",
}

_DIM = "\x1b[2m"
_RESET = "\x1b[0m"


@dataclass
class SavedSuggestions:
    """Suggestions together with hashes of the source files they were made from."""

    response: GenerateResponse
    source_files: dict[str, str] = field(default_factory=dict)
    generated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response.to_dict(),
            "sourceFiles": dict(self.source_files),
            "generatedAt": self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SavedSuggestions:
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        for key in ("response", "sourceFiles", "generatedAt"):
            if key not in data:
                raise ValueError(f"missing field `{key}`")
        files = data["sourceFiles"]
        if not isinstance(files, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in files.items()
        ):
            raise ValueError("invalid type for field `sourceFiles`")
        generated_at = data["generatedAt"]
        if not isinstance(generated_at, int) or isinstance(generated_at, bool):
            raise ValueError("invalid type for field `generatedAt`")
        return cls(
            response=GenerateResponse.from_dict(data["response"]),
            source_files=dict(files),
            generated_at=generated_at,
        )


def _extension(path: str) -> str:
    return path.rsplit(".", 1)[-1]


def detect_language(path: str) -> str:
    """Language name for a file, judged by its extension; "text" if unknown."""
    return _LANGUAGES.get(_extension(path), "text")


def format_category(category: str) -> str:
    return _CATEGORIES.get(category, category)


def _strip_dot_slash(path: str) -> str:
    while path.startswith("./"):
        path = path[2:]
    return path


def filter_diff(diff: StagedDiff, file_filter: str) -> StagedDiff:
    """Keep only the hunks and files whose path equals or ends with the filter."""
    wanted = _strip_dot_slash(file_filter)

    def matches(path: str) -> bool:
        normalized = _strip_dot_slash(path)
        return normalized == wanted or normalized.endswith(wanted)

    return StagedDiff(
        hunks=[h for h in diff.hunks if matches(h.file_path)],
        files_changed=[f for f in diff.files_changed if matches(f)],
    )


def _read_text(path: str | PathLike) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _context_files(paths: Iterable[str]):
    for path in paths:
        content = _read_text(path)
        if content is not None:
            yield FileContext(
                path=path,
                content=content[:MAX_CONTEXT_CHARS],
                language=detect_language(path),
            )


def build_request(
    diff: StagedDiff,
    test_runner: str | None = None,
    max_suggestions: int = 3,
    security: bool = False,
) -> GenerateRequest:
    """Build the request body for a diff, with up to ten readable changed files as context."""
    hunks = [
        ApiDiffHunk(
            file_path=h.file_path,
            old_start=h.old_start,
            old_lines=h.old_lines,
            new_start=h.new_start,
            new_lines=h.new_lines,
            content=h.content,
        )
        for h in diff.hunks
    ]
    context = []
    for item in _context_files(diff.files_changed):
        if len(context) >= MAX_CONTEXT_FILES:
            break
        context.append(item)
    return GenerateRequest(
        diff=DiffPayload(hunks=hunks),
        context=context,
        options=GenerateOptions(
            test_runner=test_runner or DEFAULT_TEST_RUNNER,
            max_suggestions=max_suggestions,
            include_security=security,
            include_negative_paths=True,
            model_tier="default",
        ),
    )


def compute_hash(content: str) -> str:
    """A stable 16-digit hex digest of the content, for change detection."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def _suggestions_path(root: str | PathLike | None) -> Path:
    return Path(root if root is not None else ".") / SUGGESTIONS_DIR / SUGGESTIONS_FILE


def save_suggestions(
    response: GenerateResponse,
    source_files: Iterable[str],
    root: str | PathLike | None = None,
) -> SavedSuggestions:
    """Write the suggestions and the hashes of readable source files to disk."""
    path = _suggestions_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    hashes = {}
    for source in source_files:
        content = _read_text(source)
        if content is not None:
            hashes[source] = compute_hash(content)
    saved = SavedSuggestions(
        response=response, source_files=hashes, generated_at=int(time.time())
    )
    path.write_text(json.dumps(saved.to_dict(), indent=2), encoding="utf-8")
    return saved


def load_suggestions(root: str | PathLike | None = None) -> SavedSuggestions:
    """Read the last saved suggestions; a bare response from older saves is accepted."""
    path = _suggestions_path(root)
    if not path.exists():
        raise FileNotFoundError("No suggestions found. Run 'vibetap generate' first.")
    data = json.loads(path.read_text(encoding="utf-8"))
    try:
        return SavedSuggestions.from_dict(data)
    except (ValueError, TypeError):
        pass
    return SavedSuggestions(response=GenerateResponse.from_dict(data))


def quiet_summary(response: GenerateResponse) -> str | None:
    """The one-line message shown in quiet mode, or None without suggestions."""
    count = len(response.suggestions)
    if count == 0:
        return None
    security = sum(1 for s in response.suggestions if s.category == "security")
    if security:
        return (
            f"VibeTap: {count} test suggestion(s) available ({security} security). "
            "Run 'vibetap generate' for details."
        )
    return (
        f"VibeTap: {count} test suggestion(s) available. "
        "Run 'vibetap generate' for details or 'vibetap apply' to add."
    )


def _lexer_for(file_path: str):
    try:
        return get_lexer_for_filename(f"file.{_extension(file_path)}", stripnl=False)
    except ClassNotFound:
        pass
    try:
        return TypeScriptLexer(stripnl=False)
    except ClassNotFound:
        return TextLexer(stripnl=False)


def print_code_block(code: str, file_path: str) -> None:
    """Print code with syntax highlighting inside a left border."""
    print(f"   {_DIM}┌─{_RESET}")
    if code:
        count = len(code.split("\n")) - (1 if code.endswith("\n") else 0)
        rendered = highlight(code, _lexer_for(file_path), TerminalTrueColorFormatter())
        pieces = rendered.split("\n")
        pieces += [""] * max(0, count - len(pieces))
        for piece in pieces[:count]:
            print(f"   {_DIM}│{_RESET}  {piece}")
    print(f"   {_DIM}└─{_RESET}{_RESET}")