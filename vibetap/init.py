"""Setting up the per-project configuration directory."""

from __future__ import annotations

import json
from os import PathLike
from pathlib import Path
from typing import Any, Iterable

CONFIG_DIR = ".vibetap"
CONFIG_FILE = "config.json"


def _base(root: str | PathLike | None) -> Path:
    return Path(root if root is not None else ".")


def _any_exists(base: Path, names: Iterable[str]) -> bool:
    return any((base / name).exists() for name in names)


def detect_project_type(root: str | PathLike | None = None) -> str:
    """"nextjs", "node", "rust" or "unknown", judged by the files present."""
    base = _base(root)
    if _any_exists(base, ("next.config.js", "next.config.ts", "next.config.mjs")):
        return "nextjs"
    if (base / "package.json").exists():
        return "node"
    if (base / "Cargo.toml").exists():
        return "rust"
    return "unknown"


def detect_test_runner(root: str | PathLike | None = None) -> str:
    """"vitest" or "jest", from config files or package.json; vitest by default."""
    base = _base(root)
    if _any_exists(base, ("vitest.config.ts", "vitest.config.js")):
        return "vitest"
    if _any_exists(base, ("jest.config.ts", "jest.config.js")):
        return "jest"
    try:
        content = (base / "package.json").read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        content = ""
    if "vitest" in content:
        return "vitest"
    if "jest" in content:
        return "jest"
    return "vitest"


def default_config(root: str | PathLike | None = None) -> dict[str, Any]:
    return {
        "version": "1.0",
        "projectType": detect_project_type(root),
        "testRunner": detect_test_runner(root),
        "watchMode": {"enabled": True, "debounceMs": 2000},
        "generation": {
            "maxSuggestions": 3,
            "includeSecurity": True,
            "includeNegativePaths": True,
        },
    }


def initialize(root: str | PathLike | None = None, force: bool = False) -> dict[str, Any] | None:
    """Write the default configuration; None if one exists and force is not set."""
    config_dir = _base(root) / CONFIG_DIR
    config_path = config_dir / CONFIG_FILE
    if config_path.exists() and not force:
        return None
    config_dir.mkdir(parents=True, exist_ok=True)
    config = default_config(root)
    config_path.write_text(json.dumps(config, indent=2, sort_keys=True), encoding="utf-8")
    return config


def execute(args) -> int:
    """Run the init command from parsed arguments (force)."""
    force = getattr(args, "force", False)
    print("Initializing VibeTap...")
    if force:
        print("Force mode: overwriting existing configuration")

    config = initialize(force=force)
    if config is None:
        print("VibeTap is already initialized. Use --force to re-initialize.")
        return 0

    print(f"Detected project type: {config['projectType']}")
    print("VibeTap initialized successfully!")
    print(f"Configuration saved to {CONFIG_DIR}/{CONFIG_FILE}")
    print("\nNext steps:")
    print("  1. Add your API key: vibetap auth login")
    print("  2. Start watching: vibetap watch")
    print("  3. Or generate tests: vibetap generate")
    return 0