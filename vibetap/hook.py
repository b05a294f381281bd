"""Installing and removing the pre-commit hook that asks for test suggestions."""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from .gitdiff import NotARepoError

PRE_COMMIT_HOOK_MARKER = "# VibeTap pre-commit hook"
END_MARKER = "# End VibeTap hook"
HOOK_FILE = "pre-commit"
_SHEBANG = "#!/bin/sh"
_BASE_COMMAND = "vibetap generate --staged --quiet"

_ADVISORY_TEMPLATE = """
{marker}
# Shows test suggestions before commit (advisory only)
if command -v vibetap >/dev/null 2>&1; then
    {cmd} || true
fi
{end}
"""

_BLOCKING_TEMPLATE = """
{marker}
# Shows test suggestions and blocks commit if suggestions are available
if command -v vibetap >/dev/null 2>&1; then
    output=$({cmd} 2>&1)
    result=$?
    if [ -n "$output" ]; then
        echo "$output"
        echo ""
        echo "Commit blocked: Test suggestions available."
        echo "Run 'vibetap apply' to add tests, or commit with --no-verify to skip."
        exit 1
    fi
fi
{end}
"""


@dataclass(frozen=True)
class HookStatus:
    """What the pre-commit hook in a hooks directory contains."""

    exists: bool = False
    installed: bool = False
    blocking: bool = False
    security_only: bool = False


def find_hooks_dir(start: str | PathLike | None = None) -> Path:
    """The hooks directory of the repository that holds `start` (default: cwd)."""
    current = Path(start if start is not None else Path.cwd()).absolute()
    for directory in (current, *current.parents):
        git_dir = directory / ".git"
        if git_dir.exists():
            return git_dir / "hooks"
    raise NotARepoError()


def hook_script(block: bool = False, security_only: bool = False) -> str:
    """The hook section, without a shebang line."""
    command = _BASE_COMMAND + (" --security" if security_only else "")
    template = _BLOCKING_TEMPLATE if block else _ADVISORY_TEMPLATE
    return template.format(marker=PRE_COMMIT_HOOK_MARKER, cmd=command, end=END_MARKER)


def install_hook(
    hooks_dir: str | PathLike, block: bool = False, security_only: bool = False
) -> bool:
    """Add the hook section, keeping any existing hook; False if already installed."""
    hooks_dir = Path(hooks_dir)
    hooks_dir.mkdir(parents=True, exist_ok=True)
    path = hooks_dir / HOOK_FILE

    existing = path.read_text(encoding="utf-8") if path.exists() else None
    if existing is not None and PRE_COMMIT_HOOK_MARKER in existing:
        return False

    script = hook_script(block, security_only)
    if existing is None:
        final = f"{_SHEBANG}\n{script}"
    elif existing.startswith("#!/"):
        final = f"{existing.rstrip()}\n\n{script}"
    else:
        final = f"{_SHEBANG}\n{existing.rstrip()}\n\n{script}"

    path.write_text(final, encoding="utf-8", newline="")
    path.chmod(0o755)
    return True


def _lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def uninstall_hook(hooks_dir: str | PathLike) -> bool:
    """Remove the hook section; the file goes too if nothing else is left in it.

    Returns False when there is no hook or it has no section to remove.
    """
    path = Path(hooks_dir) / HOOK_FILE
    if not path.exists():
        return False
    content = path.read_text(encoding="utf-8")
    if PRE_COMMIT_HOOK_MARKER not in content:
        return False

    kept: list[str] = []
    inside = False
    for line in _lines(content):
        if PRE_COMMIT_HOOK_MARKER in line:
            inside = True
            continue
        if inside and END_MARKER in line:
            inside = False
            continue
        if not inside:
            kept.append(line)

    while kept and kept[-1] == "":
        kept.pop()

    remaining = "\n".join(kept)
    if remaining.strip() in ("", _SHEBANG):
        path.unlink()
    else:
        path.write_text(f"{remaining}\n", encoding="utf-8", newline="")
    return True


def hook_status(hooks_dir: str | PathLike) -> HookStatus:
    path = Path(hooks_dir) / HOOK_FILE
    if not path.exists():
        return HookStatus()
    content = path.read_text(encoding="utf-8")
    if PRE_COMMIT_HOOK_MARKER not in content:
        return HookStatus(exists=True)
    return HookStatus(
        exists=True,
        installed=True,
        blocking="exit $result" in content,
        security_only="--security" in content,
    )


def _install(block: bool, security_only: bool) -> int:
    if not install_hook(find_hooks_dir(), block, security_only):
        print("VibeTap hook is already installed.")
        print(
            "Run vibetap hook uninstall && vibetap hook install "
            "to reinstall with different options."
        )
        return 0

    print("✓ VibeTap pre-commit hook installed!")
    print()
    if block:
        print("Mode: Blocking - commits will be prevented when test suggestions are available.")
        print("Use --no-verify to bypass the hook when needed.")
    else:
        print("Mode: Advisory - you'll see suggestions but commits won't be blocked.")
    if security_only:
        print(
            "Filter: Security-only - only security-related suggestions will trigger warnings."
        )
    print()
    print("The hook will run vibetap generate before each commit.")
    print("Run vibetap hook uninstall to remove the hook.")
    return 0


def _uninstall() -> int:
    hooks_dir = find_hooks_dir()
    before = hook_status(hooks_dir)
    if not before.exists:
        print("No pre-commit hook found.")
        return 0
    if not before.installed:
        print("VibeTap hook is not installed.")
        return 0

    uninstall_hook(hooks_dir)
    if (hooks_dir / HOOK_FILE).exists():
        print("✓ VibeTap section removed from pre-commit hook.")
        print("Other pre-commit hooks remain installed.")
    else:
        print("✓ VibeTap pre-commit hook removed.")
    return 0


def _status() -> int:
    try:
        hooks_dir = find_hooks_dir()
    except NotARepoError:
        print("Not a git repository.")
        return 0

    status = hook_status(hooks_dir)
    if not status.exists:
        print("VibeTap pre-commit hook: Not installed")
        print("Run vibetap hook install to install.")
    elif status.installed:
        print("VibeTap pre-commit hook: Installed ✓")
        if status.blocking:
            print("  Mode: Blocking (prevents commits when suggestions available)")
        else:
            print("  Mode: Advisory (shows suggestions but allows commits)")
        if status.security_only:
            print("  Filter: Security-only")
        print()
        print("Run vibetap hook uninstall to remove.")
    else:
        print("VibeTap pre-commit hook: Not installed")
        print("A pre-commit hook exists but doesn't include VibeTap.")
        print("Run vibetap hook install to add VibeTap to it.")
    return 0


def execute(args) -> int:
    """Run the hook command from parsed arguments (action, block, security_only).

    `action` is one of "install", "uninstall" or "status".
    """
    action = getattr(args, "action", "status")
    if action == "install":
        try:
            return _install(
                getattr(args, "block", False), getattr(args, "security_only", False)
            )
        except NotARepoError:
            print("Not a git repository. Run this command from within a git repo.")
            raise
    if action == "uninstall":
        return _uninstall()
    if action == "status":
        return _status()
    raise ValueError(f"Unknown hook action: {action}")