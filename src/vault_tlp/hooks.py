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

"""Claude Code PreToolUse hook gating file access by TLP level."""

import json
import logging
import re
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .classifier import classify_file
from .models import Tlp
from .redact import extract_hidden
from .vault import find_vault_from_dir, normalize_path

logger = logging.getLogger(__name__)

# Regex to identify path-like tokens in shell commands
_PATH_PATTERN = re.compile(r"^(?:[~/.]|/[^/])")
_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
# Fallback regex for path extraction when shlex fails
_FALLBACK_PATH_RE = re.compile(r"(?:^|[\s;|&])([~/][^\s;|&]+|\.\.?/[^\s;|&]+)")

FILE_TOOLS = ("Read", "Write", "Edit", "MultiEdit")
READ_TOOLS = ("Read", "Grep")
WRITE_TOOLS = ("Write", "Edit", "MultiEdit")

CONFIG_ERROR_MESSAGE = "Cannot read .tlp policy. All files treated as RED until fixed."


@dataclass
class Decision:
    """Whether a tool call may proceed, with an optional message."""

    allow: bool
    message: str | None = None


def _extract_bash_paths(command: str) -> list[str]:
    """Extract path-like tokens from a shell command."""
    paths: list[str] = []
    try:
        tokens = shlex.split(command)
    except ValueError:
        # Malformed command (unclosed quotes), fall back to regex
        return [m.group(1) for m in _FALLBACK_PATH_RE.finditer(command)]

    for token in tokens:
        if _URL_PATTERN.match(token):
            continue
        if _PATH_PATTERN.match(token) or "/" in token:
            paths.append(token)
    return paths


def _resolve(path: str, project_dir: Path | None) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = (project_dir or Path.cwd()) / p
    return p


def _bash_paths(command: str, project_dir: Path | None) -> list[Path]:
    """Paths a shell command may touch.

    Path-like tokens, plus bare tokens such as ``notes.md`` that name an
    existing file or directory.
    """
    tokens = _extract_bash_paths(command)
    try:
        words = shlex.split(command)
    except ValueError:
        words = []
    for word in words:
        if word in tokens or word.startswith("-") or _URL_PATTERN.match(word):
            continue
        if _resolve(word, project_dir).exists():
            tokens.append(word)
    return [_resolve(token, project_dir) for token in tokens]


def _has_hidden_content(path: Path) -> bool:
    """True if a file holds content its safe view would hide.

    A file that exists but can't be read as UTF-8 counts as hidden.
    """
    if not path.exists():
        return False
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot inspect %s: %s", path, e)
        return True
    return bool(extract_hidden(content))


def _amber_read_denied(path: Path) -> Decision:
    return Decision(
        allow=False,
        message=(
            "TLP:AMBER - this file requires approval. Ask the user, then use:\n"
            f'tlp read "{path}"'
        ),
    )


def check_file_access(tool_name: str, file_path: str, project_dir: Path | None = None) -> Decision:
    """Decide whether a file tool may touch a path."""
    path = _resolve(file_path, project_dir)
    classification = classify_file(path)
    if classification is None:
        return Decision(allow=True)

    if classification.config_error:
        return Decision(allow=False, message=CONFIG_ERROR_MESSAGE)

    rel = classification.rel_path
    if classification.level == Tlp.RED:
        # Nothing to leak in a file that doesn't exist yet
        if tool_name == "Write" and not path.exists():
            return Decision(allow=True, message=f"TLP:RED - new file creation allowed in: {rel}")
        return Decision(allow=False, message=f"TLP:RED - access blocked for: {rel}")

    if classification.level == Tlp.AMBER:
        if tool_name in READ_TOOLS:
            return _amber_read_denied(path)
        if tool_name in WRITE_TOOLS and _has_hidden_content(path):
            return Decision(
                allow=False,
                message=(
                    f"TLP:AMBER - {rel} contains redacted content. Use tlp edit, tlp insert "
                    "or tlp write so it is preserved."
                ),
            )
        return Decision(
            allow=True,
            message=f"TLP:AMBER - editing allowed, but never output content verbatim from: {rel}",
        )

    return Decision(allow=True)


def check_search_access(search_path: str | None, project_dir: Path | None = None) -> Decision:
    """Decide whether Grep may search a file or directory.

    A file is gated like Read. A directory inside a vault is denied, since
    its matches could come from any file below it.
    """
    path = _resolve(search_path or ".", project_dir)
    if not path.is_dir():
        return check_file_access("Grep", str(path), project_dir)

    vault_root = find_vault_from_dir(normalize_path(path))
    if vault_root is None:
        return Decision(allow=True)
    return Decision(
        allow=False,
        message=(
            f"TLP - searching vault directory {path} is blocked. "
            "Search GREEN files directly, or ask the user and use tlp read."
        ),
    )


def check_bash_access(command: str, project_dir: Path | None = None) -> Decision:
    """Block shell commands that reference RED paths or AMBER files with hidden content."""
    for path in _bash_paths(command, project_dir):
        classification = classify_file(path)
        if classification is None:
            continue
        if classification.config_error:
            return Decision(allow=False, message=CONFIG_ERROR_MESSAGE)
        if classification.level == Tlp.RED:
            return Decision(
                allow=False,
                message=f"TLP:RED - command references blocked path: {classification.rel_path}",
            )
        if classification.level == Tlp.AMBER and not path.is_dir() and _has_hidden_content(path):
            return Decision(
                allow=False,
                message=(
                    f"TLP:AMBER - {classification.rel_path} contains redacted content. "
                    f'Ask the user, then use:\ntlp read "{path}"'
                ),
            )
    return Decision(allow=True)


def _build_block_response(reason: str) -> dict[str, Any]:
    """Build a blocking response for PreToolUse."""
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "permissionDecision": "deny",
            "permissionDecisionReason": reason,
        },
    }


def _build_allow_response(message: str | None) -> dict[str, Any]:
    response: dict[str, Any] = {"continue": True}
    if message:
        response["systemMessage"] = message
    return response


def handle_pre_tool_use(data: dict[str, Any], project_dir: Path | None = None) -> int:
    """Handle PreToolUse hook event."""
    tool_name = data.get("tool_name", "")
    tool_input = data.get("tool_input") or {}

    if tool_name in FILE_TOOLS and tool_input.get("file_path"):
        decision = check_file_access(tool_name, tool_input["file_path"], project_dir)
    elif tool_name == "Grep":
        decision = check_search_access(tool_input.get("path"), project_dir)
    elif tool_name == "Bash" and tool_input.get("command"):
        decision = check_bash_access(tool_input["command"], project_dir)
    else:
        # Some tool calls legitimately have no file path
        decision = Decision(allow=True)

    if not decision.allow:
        reason = decision.message or "Blocked by TLP policy"
        json.dump(_build_block_response(reason), sys.stdout)
        sys.stderr.write(f"{reason}\n")
        logger.debug("Denied %s: %s", tool_name, reason)
        return 2

    json.dump(_build_allow_response(decision.message), sys.stdout)
    return 0


def run_hook(project_dir: Path | None = None) -> int:
    """Main hook entry point. Reads JSON from stdin, dispatches to handler."""
    try:
        data = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        sys.stderr.write(f"Invalid JSON input: {e}\n")
        return 1

    if data.get("hook_event_name", "") == "PreToolUse":
        return handle_pre_tool_use(data, project_dir)

    # Unknown or unsupported event, allow to continue
    json.dump({"continue": True}, sys.stdout)
    return 0
