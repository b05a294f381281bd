"""Running the applied tests with the project's test runner."""

from __future__ import annotations

import subprocess
from os import PathLike
from pathlib import Path
from typing import Iterable

from .apply import load_history

SUPPORTED_RUNNERS = ("vitest", "jest", "pytest", "cargo-test", "go-test")


def _base(root: str | PathLike | None) -> Path:
    return Path(root if root is not None else ".")


def _any_exists(base: Path, names: Iterable[str]) -> bool:
    return any((base / name).exists() for name in names)


def detect_test_runner(root: str | PathLike | None = None) -> str:
    """Guess the test runner from the project files.

    Raises LookupError when nothing points to a runner.
    """
    base = _base(root)
    if _any_exists(base, ("vitest.config.ts", "vitest.config.js", "vitest.config.mts")):
        return "vitest"
    if _any_exists(base, ("jest.config.ts", "jest.config.js", "jest.config.json")):
        return "jest"
    if _any_exists(base, ("pytest.ini", "pyproject.toml", "setup.py")):
        try:
            if "pytest" in (base / "pyproject.toml").read_text(encoding="utf-8"):
                return "pytest"
        except (OSError, UnicodeDecodeError):
            pass
    if (base / "Cargo.toml").exists():
        return "cargo-test"
    if (base / "go.mod").exists():
        return "go-test"
    if (base / "package.json").exists():
        return "vitest"
    raise LookupError(
        "Could not detect test runner. Use --runner to specify one.\n"
        f"Supported: {', '.join(SUPPORTED_RUNNERS)}"
    )


def build_command(
    runner: str, test_files: Iterable[str] = (), extra_args: Iterable[str] = ()
) -> tuple[str, list[str]]:
    """The program and arguments that run the given tests with a runner.

    An unknown runner is run directly with the files and extra arguments.
    """
    files = list(test_files)
    extra = list(extra_args)
    if runner == "vitest":
        return "npx", ["vitest", "run", *files, *extra]
    if runner == "jest":
        return "npx", ["jest", *files, *extra]
    if runner == "pytest":
        return "pytest", [*files, *extra]
    if runner == "cargo-test":
        return "cargo", ["test", *extra]
    if runner == "go-test":
        return "go", ["test", *(files or ["./..."]), *extra]
    return runner, [*files, *extra]


def applied_test_files(root: str | PathLike | None = None) -> list[str]:
    """Paths of applied suggestions that still exist under `root`."""
    base = _base(root)
    return [
        record.file_path
        for record in load_history(root).records
        if (base / record.file_path).exists()
    ]


def execute(args) -> int:
    """Run the run command from parsed arguments (all, runner, args).

    Returns the test runner's exit status.
    """
    runner = getattr(args, "runner", None) or detect_test_runner()
    print(f"Using test runner: {runner}")

    run_all = getattr(args, "all", False)
    test_files = [] if run_all else applied_test_files()
    if not run_all and not test_files:
        print("No applied test files found. Use --all to run all tests.")
        return 0

    if runner == "cargo-test" and test_files:
        print("Note: Cargo test runs all tests. Use 'cargo test <name>' for specific tests.")
    command, command_args = build_command(runner, test_files, getattr(args, "args", None) or [])

    print(f"Running: {command} {' '.join(command_args)}")
    print()

    completed = subprocess.run([command, *command_args], check=False)
    if completed.returncode == 0:
        print("\nAll tests passed!")
        return 0

    code = completed.returncode if completed.returncode > 0 else 1
    print(f"\nTests failed! (exit code: {code})")
    return code