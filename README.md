# vibetap

`vibetap` works with test suggestions for the code you are about to commit.
It has two halves:

- a library that reads the staged or uncommitted changes of a git
  repository, sends them to the test-generation service and keeps the
  returned suggestions in `.vibetap/last-suggestions.json`;
- a `vibetap` command that applies saved suggestions to your project,
  reverts them, runs them, silences suggestions for a while and manages a
  git pre-commit hook.

Reading the repository needs the `git` executable on your `PATH`.

## Installation

```
pip install .
pip install ".[test]"   # with pytest and responses for the test suite
```

## Commands

Run them from the project root: every command keeps its files in the
`.vibetap/` directory of the current directory. `-v`/`--verbose` may be
given before or after any subcommand; `--version` prints the version. If a
command fails, the error is printed to standard error as `Error: ...` and
the exit status is 1.

```
vibetap init [-f|--force]
```
Writes `.vibetap/config.json` with the detected project type (`nextjs`,
`node`, `rust` or `unknown`), the detected test runner (`vitest` or `jest`,
from their config files or `package.json`; `vitest` by default) and default
watch and generation settings. An existing configuration is kept unless
`--force` is given. The other commands do not read this file.

```
vibetap apply [SELECTION ...] [-y|--yes] [-f|--force]
```
Writes saved suggestions into the project. A selection is a number (`2`), a
range (`1-3`), a comma- or space-separated list (`1,3`) or `all`; without a
selection the suggestions are listed and you are asked for one. Each chosen
suggestion is shown with syntax-highlighted code before you confirm.

If the source files have changed since the suggestions were saved, the
changed files are listed and you are asked whether to go on; with `--yes`
the command stops there instead, and `--force` skips the check. `--yes`
also skips the final confirmation. Every written file is recorded in
`.vibetap/history.json`, with its earlier content if it already existed.

```
vibetap revert [-y|--yes] [--all] [-c|--count N]
```
Undoes applied suggestions: files that were created are deleted, files that
were overwritten get their earlier content back. By default the last batch
(the suggestions applied together) is reverted; `--count N` reverts the last
N records and `--all` reverts everything.

```
vibetap run [--all] [--runner NAME] [-- EXTRA ARGS ...]
```
Runs the applied test files that still exist. The runner is `--runner`, or
else detected from the project: `vitest`, `jest`, `pytest` (when
`pyproject.toml` mentions pytest), `cargo-test`, `go-test`, or `vitest` for
any project with a `package.json`. Any other name given to `--runner` is run
as a command with the test files as arguments. `--all` runs the whole
suite. The runner's exit status becomes the command's exit status.

```
vibetap hush [DURATION] [--status] [--clear]
```
Records in `.vibetap/state.json` that suggestions are silenced: `30m` (the
default), `1h`, `2h30m`, `1d`, `45s` or `forever`; a bare number means
minutes. `--status` shows the time left, `--clear` ends the silence.

```
vibetap hook install [--block] [--security-only]
vibetap hook uninstall
vibetap hook status
```
Adds a section to `.git/hooks/pre-commit` that runs
`vibetap generate --staged --quiet` (with `--security` under
`--security-only`). By default the hook is advisory; with `--block` the
commit is stopped whenever that command prints anything. An existing
pre-commit hook is kept, and uninstalling removes only the VibeTap section
(and the file, if nothing else is left in it).

## Library

```python
from vibetap.api import ApiClient
from vibetap.gitdiff import get_staged_diff
from vibetap.generate import build_request, filter_diff, save_suggestions, quiet_summary

diff = get_staged_diff()                      # or get_uncommitted_diff()
diff = filter_diff(diff, "src/app.ts")        # optional: one file only
request = build_request(diff, test_runner="vitest", max_suggestions=3, security=True)

client = ApiClient("https://api.example.com", api_key="placeholder")
response = client.generate(request)
save_suggestions(response, diff.files_changed)  # what `vibetap apply` reads
print(quiet_summary(response))
```

- `vibetap.gitdiff`: `get_staged_diff`, `get_uncommitted_diff`,
  `has_staged_changes` and `parse_patch` return a `StagedDiff` of
  `DiffHunk`s and changed files. `NotARepoError` and `NoStagedChangesError`
  are both `GitError`s.
- `vibetap.api`: `ApiClient.generate` and `ApiClient.get_usage` send the
  bearer token and return `GenerateResponse` / `UsageResponse`. Failures
  raise `ApiError` or one of its subclasses `UnauthorizedError`,
  `RateLimitedError` (with `retry_after`, 60 seconds when the service gives
  none) and `QuotaExceededError`.
- `vibetap.generate`: `build_request` sends up to ten readable changed files
  (first 50,000 characters each) as context; `load_suggestions` also accepts
  a file that holds a bare response; `compute_hash`, `detect_language`,
  `format_category` and `print_code_block` are the helpers the commands use.

## What is not included

- There is no `generate` command: producing suggestions is done through the
  library as above. Because the pre-commit hook calls `vibetap generate`, an
  installed hook does not produce suggestions with this package's command
  line, and a `--block` hook stops commits on the resulting error output.
- There is no login or credential storage; pass the API key to `ApiClient`
  yourself.
- There is no watch mode. The hush state is only read by `vibetap hush`.

## Files

`.vibetap/` holds `config.json`, `last-suggestions.json`, `history.json` and
`state.json`. You will usually want to add it to `.gitignore`.