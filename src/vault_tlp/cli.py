# Copyright 2025 Lars Marowsky-Brée <lars@marowsky-bree.eu>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for TLP vault access."""

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn

from .classifier import classify_file
from .config import GUARDED_TOOLS, get_policy_path, get_settings_path, validate_policy_file
from .editing import (
    EditResult,
    edit_content,
    insert_content,
    render_diff,
    unescape_shell,
    write_content,
)
from .errors import EditTargetNotFoundError, RestorationError, TlpError
from .frontmatter import get_value, read_md_files, set_value
from .hooks import CONFIG_ERROR_MESSAGE, run_hook
from .models import Tlp
from .redact import safe_view
from .vault import find_vault_from_cwd


def _read_text(path: Path) -> str:
    """Read a file without newline translation, so \\r survives a round trip."""
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(content)


def _refusal(file_path: str, tool: str) -> str | None:
    """Return an error message if a file must not be handled, else None."""
    classification = classify_file(file_path)
    if classification is None:
        return None
    if classification.config_error:
        return CONFIG_ERROR_MESSAGE
    if classification.level == Tlp.RED:
        return f"TLP:RED - {tool} refuses RED files."
    return None


def cmd_hook(args: argparse.Namespace) -> int:
    """Run as Claude Code hook."""
    project_dir = os.environ.get("CLAUDE_PROJECT_DIR")
    return run_hook(Path(project_dir) if project_dir else None)


def cmd_read(args: argparse.Namespace) -> int:
    """Print the safe view of a file."""
    refusal = _refusal(args.file, "tlp read")
    if refusal:
        print(refusal, file=sys.stderr)
        return 1

    try:
        content = _read_text(Path(args.file))
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    view, secrets_found = safe_view(content)
    if secrets_found:
        print(
            f"WARNING: secret(s) detected and redacted in {args.file}. "
            "Consider rotating the exposed key(s).",
            file=sys.stderr,
        )
    sys.stdout.write(view)
    return 0


def _apply(
    args: argparse.Namespace,
    operation: str,
    build: Callable[[str | None], EditResult],
    must_exist: bool = True,
) -> int:
    """Shared driver for the write commands: gate, read, build, write, report."""
    refusal = _refusal(args.file, f"tlp {operation}")
    if refusal:
        print(refusal, file=sys.stderr)
        return 1

    path = Path(args.file)
    try:
        original = _read_text(path) if must_exist or path.exists() else None
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read {path}: {e}", file=sys.stderr)
        return 1

    try:
        result = build(original)
    except RestorationError as e:
        print(f"Restoration failed: {e}", file=sys.stderr)
        print(f"  {e.summary()}", file=sys.stderr)
        print("The original file was NOT modified.", file=sys.stderr)
        return 1
    except EditTargetNotFoundError as e:
        print(f"{e} in {path}", file=sys.stderr)
        print(
            "Hint: if the file was modified externally, re-read with tlp read and retry.",
            file=sys.stderr,
        )
        return 1
    except TlpError as e:
        print(e, file=sys.stderr)
        return 1

    try:
        _write_text(path, result.content)
    except OSError as e:
        print(f"Cannot write {path}: {e}", file=sys.stderr)
        return 1

    hidden = result.hidden
    if hidden:
        print(
            f"Restored {len(hidden.blocks)} TLP block(s), {len(hidden.inline_chunks)} "
            f"inline chunk(s), {len(hidden.secrets)} secret(s)",
            file=sys.stderr,
        )
    if not args.quiet:
        diff = render_diff(result.old_view, result.new_view, str(path), human=args.human)
        if diff:
            print(diff, file=sys.stderr)

    print(path)
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    """Replace one visible occurrence of a string."""
    old = unescape_shell(args.old)
    new = unescape_shell(args.new)

    return _apply(args, "edit", lambda original: edit_content(original or "", old, new))


def cmd_insert(args: argparse.Namespace) -> int:
    """Insert a line before or after a marker line."""
    before = args.before is not None
    marker = unescape_shell(args.before if before else args.after)
    text = unescape_shell(args.content)

    return _apply(
        args, "insert", lambda original: insert_content(original or "", marker, text, before)
    )


def cmd_write(args: argparse.Namespace) -> int:
    """Replace the whole file from a safe view on stdin."""
    new_view = sys.stdin.read()

    return _apply(
        args, "write", lambda original: write_content(original, new_view), must_exist=False
    )


def cmd_classify(args: argparse.Namespace) -> int:
    """Print the TLP level of a file."""
    classification = classify_file(args.file)
    if classification is None:
        print(f"{args.file}: not inside a vault (no .tlp file found)", file=sys.stderr)
        return 1
    if classification.config_error:
        print(CONFIG_ERROR_MESSAGE, file=sys.stderr)
    print(f"{classification.level.name}\t{classification.rel_path}")
    return 0


def _resolve_metadata_dir(directory: str) -> Path | None:
    """Absolute directories as-is, relative ones from the vault root."""
    path = Path(directory)
    if path.is_absolute():
        return path
    vault_root = find_vault_from_cwd()
    if vault_root is None:
        print("Cannot find vault root (no .tlp file in parent directories)", file=sys.stderr)
        return None
    return vault_root / path


def _metadata_set(directory: Path, key: str, value: str) -> int:
    count = total = 0
    for entry in read_md_files(directory):
        total += 1
        try:
            content = _read_text(entry)
        except (OSError, UnicodeDecodeError):
            continue

        new_content = set_value(content, key, value)
        if new_content == content:
            print(f"  ok:      {entry.name}")
            count += 1
            continue
        try:
            _write_text(entry, new_content)
        except OSError as e:
            print(f"  error:   {entry.name} ({e})", file=sys.stderr)
            continue
        print(f"  updated: {entry.name}")
        count += 1

    print()
    print(f"Done: {count}/{total} files processed with {key}: {value}")
    return 0


def _metadata_get(directory: Path, key: str) -> int:
    count = total = 0
    for entry in read_md_files(directory):
        total += 1
        try:
            content = _read_text(entry)
        except (OSError, UnicodeDecodeError):
            continue
        value = get_value(content, key)
        if value is not None:
            print(f"  {entry.stem}: {value}")
            count += 1

    print()
    print(f"{count}/{total} files have {key} set")
    return 0


def _metadata_has(directory: Path, key: str) -> int:
    missing = total = 0
    print(f"Files missing {key}:")
    for entry in read_md_files(directory):
        total += 1
        try:
            content = _read_text(entry)
        except (OSError, UnicodeDecodeError):
            continue
        if get_value(content, key) is None:
            print(f"  {entry.name}")
            missing += 1

    print()
    print(f"{missing}/{total} files missing {key}")
    return 0


def cmd_metadata(args: argparse.Namespace) -> int:
    """Manage a frontmatter key across the markdown files of a directory."""
    directory = _resolve_metadata_dir(args.directory)
    if directory is None:
        return 1
    if not directory.is_dir():
        print(f"Directory not found: {args.directory}", file=sys.stderr)
        return 1

    if args.metadata_command == "set":
        return _metadata_set(directory, args.key, args.value)
    if args.metadata_command == "get":
        return _metadata_get(directory, args.key)
    return _metadata_has(directory, args.key)


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate policy file syntax."""
    if args.policy:
        path = Path(args.policy)
    else:
        vault_root = find_vault_from_cwd()
        if vault_root is None:
            print("Cannot find vault root (no .tlp file in parent directories)", file=sys.stderr)
            return 1
        path = get_policy_path(vault_root)

    errors = validate_policy_file(path)
    if errors:
        print(f"Validation errors in {path}:", file=sys.stderr)
        for err in errors:
            print(f"  {err}", file=sys.stderr)
        return 1
    print(f"{path}: OK")
    return 0


def cmd_claude_setup(args: argparse.Namespace) -> int:
    """Configure Claude Code hooks in settings.json."""
    settings_path = get_settings_path(global_=args.glob)
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    # Load existing settings
    if settings_path.exists():
        with settings_path.open() as f:
            settings = json.load(f)
    else:
        settings = {}

    hooks_config = {
        "PreToolUse": [
            {
                "matcher": "|".join(GUARDED_TOOLS),
                "hooks": [{"type": "command", "command": "tlp hook"}],
            }
        ],
    }

    if "hooks" not in settings:
        settings["hooks"] = {}

    settings["hooks"].update(hooks_config)

    with settings_path.open("w") as f:
        json.dump(settings, f, indent=2)

    print(f"Updated {settings_path}", file=sys.stderr)
    return 0


def _add_write_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-q", "--quiet", action="store_true", help="Don't print the diff")
    parser.add_argument(
        "--human", action="store_true", help="Print a line-numbered diff instead of unified"
    )


def main() -> int | NoReturn:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="tlp", description="TLP-aware vault access")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # hook subcommand
    subparsers.add_parser("hook", help="Run as Claude Code hook (reads JSON from stdin)")

    # read subcommand
    read_parser = subparsers.add_parser("read", help="Print the redacted view of a file")
    read_parser.add_argument("file", help="File to read")

    # edit subcommand
    edit_parser = subparsers.add_parser("edit", help="Replace one occurrence of visible text")
    edit_parser.add_argument("file", help="File to edit")
    edit_parser.add_argument("--old", required=True, help="Visible text to replace")
    edit_parser.add_argument("--new", required=True, help="Replacement text")
    _add_write_flags(edit_parser)

    # insert subcommand
    insert_parser = subparsers.add_parser("insert", help="Insert a line next to a marker line")
    insert_parser.add_argument("file", help="File to edit")
    position = insert_parser.add_mutually_exclusive_group(required=True)
    position.add_argument("--before", help="Insert before this line (trimmed match)")
    position.add_argument("--after", help="Insert after this line (trimmed match)")
    insert_parser.add_argument("--content", required=True, help="Text to insert")
    _add_write_flags(insert_parser)

    # write subcommand
    write_parser = subparsers.add_parser(
        "write", help="Overwrite a file from stdin, preserving hidden content"
    )
    write_parser.add_argument("file", help="File to write")
    _add_write_flags(write_parser)

    # classify subcommand
    classify_parser = subparsers.add_parser("classify", help="Print the TLP level of a file")
    classify_parser.add_argument("file", help="File to classify")

    # metadata subcommand group
    metadata_parser = subparsers.add_parser(
        "metadata", help="Manage frontmatter keys without reading bodies"
    )
    metadata_sub = metadata_parser.add_subparsers(dest="metadata_command", required=True)

    set_parser = metadata_sub.add_parser("set", help="Set a key in every .md file")
    set_parser.add_argument("directory", help="Directory (relative to vault root if relative)")
    set_parser.add_argument("key", help="Frontmatter key")
    set_parser.add_argument("value", help="Value to set")

    get_parser = metadata_sub.add_parser("get", help="Show a key's value per file")
    get_parser.add_argument("directory", help="Directory (relative to vault root if relative)")
    get_parser.add_argument("key", help="Frontmatter key")

    has_parser = metadata_sub.add_parser("has", help="List files missing a key")
    has_parser.add_argument("directory", help="Directory (relative to vault root if relative)")
    has_parser.add_argument("key", help="Frontmatter key")

    # validate subcommand
    validate_parser = subparsers.add_parser("validate", help="Validate .tlp policy syntax")
    validate_parser.add_argument("--policy", help="Policy file (default: vault's .tlp)")

    # claude-setup subcommand
    setup_parser = subparsers.add_parser("claude-setup", help="Configure Claude Code hooks")
    setup_parser.add_argument(
        "--global", dest="glob", action="store_true", help="Configure global settings"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "hook":
        return cmd_hook(args)
    if args.command == "read":
        return cmd_read(args)
    if args.command == "edit":
        return cmd_edit(args)
    if args.command == "insert":
        return cmd_insert(args)
    if args.command == "write":
        return cmd_write(args)
    if args.command == "classify":
        return cmd_classify(args)
    if args.command == "metadata":
        return cmd_metadata(args)
    if args.command == "validate":
        return cmd_validate(args)
    if args.command == "claude-setup":
        return cmd_claude_setup(args)

    parser.print_help()
    return 1
