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

"""Tests for the Claude Code hook handler."""

import io
import json
import sys
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from vault_tlp.hooks import _extract_bash_paths, handle_pre_tool_use, run_hook


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """Create a vault with RED, AMBER and GREEN files."""
    root = tmp_path / "vault"
    (root / "Private").mkdir(parents=True)
    (root / "Public").mkdir()
    (root / ".tlp").write_text('RED:\n  - "Private/**"\nGREEN:\n  - "Public/**"\n')
    (root / "Private" / "diary.md").write_text("Dear diary\n")
    (root / "Public" / "readme.md").write_text("Hello\n")
    (root / "notes.md").write_text("Plain notes\n")
    (root / "hidden.md").write_text("Visible\n#tlp/red\nsecret\n")
    return root


def capture_output(func: Any, *args: Any, **kwargs: Any) -> tuple[int, dict[str, Any]]:
    """Capture stdout from a hook function and parse as JSON."""
    stdout = io.StringIO()
    with patch.object(sys, "stdout", stdout), patch.object(sys, "stderr", io.StringIO()):
        result = func(*args, **kwargs)
    stdout.seek(0)
    output = json.load(stdout)
    return result, output


def tool_event(tool_name: str, **tool_input: str) -> dict[str, Any]:
    return {"hook_event_name": "PreToolUse", "tool_name": tool_name, "tool_input": tool_input}


def deny_reason(output: dict[str, Any]) -> str:
    specific = output["hookSpecificOutput"]
    assert specific["permissionDecision"] == "deny"
    return str(specific["permissionDecisionReason"])


def test_outside_vault_allowed(tmp_path: Path) -> None:
    """Test files outside any vault are not gated."""
    data = tool_event("Read", file_path=str(tmp_path / "elsewhere.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert output == {"continue": True}


def test_red_read_denied(vault: Path) -> None:
    """Test reading a RED file is denied."""
    data = tool_event("Read", file_path=str(vault / "Private" / "diary.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 2
    assert "TLP:RED" in deny_reason(output)
    assert "Private/diary.md" in deny_reason(output)


def test_red_write_existing_denied(vault: Path) -> None:
    """Test overwriting a RED file is denied."""
    data = tool_event("Write", file_path=str(vault / "Private" / "diary.md"), content="x")
    code, _ = capture_output(handle_pre_tool_use, data)
    assert code == 2


def test_red_write_new_file_allowed(vault: Path) -> None:
    """Test creating a new file in a RED area is allowed."""
    data = tool_event("Write", file_path=str(vault / "Private" / "new.md"), content="x")
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert output["continue"] is True
    assert "new file creation allowed" in output["systemMessage"]


def test_red_edit_new_file_denied(vault: Path) -> None:
    """Test only Write gets the new-file exception."""
    data = tool_event("Edit", file_path=str(vault / "Private" / "new.md"))
    code, _ = capture_output(handle_pre_tool_use, data)
    assert code == 2


def test_amber_read_points_to_tlp_read(vault: Path) -> None:
    """Test reading an AMBER file is redirected to tlp read."""
    data = tool_event("Read", file_path=str(vault / "notes.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 2
    reason = deny_reason(output)
    assert "TLP:AMBER" in reason
    assert f'tlp read "{vault / "notes.md"}"' in reason


def test_amber_edit_allowed_with_reminder(vault: Path) -> None:
    """Test editing an AMBER file without hidden content is allowed."""
    data = tool_event("Edit", file_path=str(vault / "notes.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert "never output content verbatim" in output["systemMessage"]


def test_amber_edit_with_hidden_content_denied(vault: Path) -> None:
    """Test direct edits can't touch files with redacted content."""
    for tool in ("Write", "Edit", "MultiEdit"):
        data = tool_event(tool, file_path=str(vault / "hidden.md"))
        code, output = capture_output(handle_pre_tool_use, data)
        assert code == 2
        assert "tlp edit" in deny_reason(output)


def test_green_read_allowed(vault: Path) -> None:
    """Test GREEN files pass without a message."""
    data = tool_event("Read", file_path=str(vault / "Public" / "readme.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert output == {"continue": True}


def test_frontmatter_makes_file_red(vault: Path) -> None:
    """Test a frontmatter declaration gates an otherwise GREEN file."""
    path = vault / "Public" / "locked.md"
    path.write_text("---\ntlp: RED\n---\nBody\n")
    code, _ = capture_output(handle_pre_tool_use, tool_event("Read", file_path=str(path)))
    assert code == 2


def test_relative_path_uses_project_dir(vault: Path) -> None:
    """Test relative tool paths resolve against the project directory."""
    data = tool_event("Read", file_path="Private/diary.md")
    code, _ = capture_output(handle_pre_tool_use, data, vault)
    assert code == 2


def test_config_error_denies(tmp_path: Path) -> None:
    """Test an unreadable policy denies access."""
    (tmp_path / ".tlp").mkdir()
    data = tool_event("Read", file_path=str(tmp_path / "note.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 2
    assert "All files treated as RED" in deny_reason(output)


def test_bash_red_path_denied(vault: Path) -> None:
    """Test shell commands referencing RED paths are denied."""
    data = tool_event("Bash", command="cat Private/diary.md | head")
    code, output = capture_output(handle_pre_tool_use, data, vault)
    assert code == 2
    assert "Private/diary.md" in deny_reason(output)


def test_bash_absolute_red_path_denied(vault: Path) -> None:
    """Test absolute RED paths in commands are denied."""
    data = tool_event("Bash", command=f"grep -r x {vault / 'Private'}")
    code, _ = capture_output(handle_pre_tool_use, data)
    assert code == 2


def test_bash_other_paths_allowed(vault: Path) -> None:
    """Test commands touching only non-RED paths are allowed."""
    data = tool_event("Bash", command="wc -l notes.md Public/readme.md")
    code, output = capture_output(handle_pre_tool_use, data, vault)
    assert code == 0
    assert output == {"continue": True}


def test_bash_amber_hidden_content_denied(vault: Path) -> None:
    """Test shell commands can't print AMBER files with redacted content."""
    data = tool_event("Bash", command=f"cat {vault / 'hidden.md'}")
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 2
    reason = deny_reason(output)
    assert "TLP:AMBER" in reason
    assert f'tlp read "{vault / "hidden.md"}"' in reason


def test_bash_amber_everywhere_policy(tmp_path: Path) -> None:
    """Test an AMBER-wide policy still stops cat on a file with a red block."""
    (tmp_path / ".tlp").write_text('AMBER:\n  - "**"\n')
    path = tmp_path / "note.md"
    path.write_text("ok\n#tlp/red\nTOPSECRET\n#tlp/amber\n")
    code, _ = capture_output(handle_pre_tool_use, tool_event("Bash", command=f"cat {path}"))
    assert code == 2
    code, _ = capture_output(handle_pre_tool_use, tool_event("Read", file_path=str(path)))
    assert code == 2


def test_bash_bare_file_name_checked(vault: Path) -> None:
    """Test bare file names relative to the project directory are gated."""
    code, output = capture_output(
        handle_pre_tool_use, tool_event("Bash", command="cat hidden.md"), vault
    )
    assert code == 2
    assert "hidden.md" in deny_reason(output)


def test_bash_bare_red_directory_denied(vault: Path) -> None:
    """Test a bare RED directory name in a command is denied."""
    data = tool_event("Bash", command="grep -r diary Private")
    code, output = capture_output(handle_pre_tool_use, data, vault)
    assert code == 2
    assert "TLP:RED" in deny_reason(output)


def test_grep_red_file_denied(vault: Path) -> None:
    """Test Grep on a RED file is denied."""
    data = tool_event("Grep", pattern="diary", path=str(vault / "Private" / "diary.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 2
    assert "TLP:RED" in deny_reason(output)


def test_grep_amber_file_points_to_tlp_read(vault: Path) -> None:
    """Test Grep on an AMBER file is gated like Read."""
    data = tool_event("Grep", pattern="secret", path="hidden.md")
    code, output = capture_output(handle_pre_tool_use, data, vault)
    assert code == 2
    assert "tlp read" in deny_reason(output)


def test_grep_green_file_allowed(vault: Path) -> None:
    """Test Grep on a GREEN file passes."""
    data = tool_event("Grep", pattern="Hello", path=str(vault / "Public" / "readme.md"))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert output == {"continue": True}


def test_grep_vault_directory_denied(vault: Path) -> None:
    """Test Grep over a vault directory, or the project default, is denied."""
    data = tool_event("Grep", pattern="secret", path=str(vault))
    code, _ = capture_output(handle_pre_tool_use, data)
    assert code == 2
    code, _ = capture_output(handle_pre_tool_use, tool_event("Grep", pattern="secret"), vault)
    assert code == 2


def test_grep_outside_vault_allowed(tmp_path: Path) -> None:
    """Test Grep outside any vault is not gated."""
    data = tool_event("Grep", pattern="x", path=str(tmp_path))
    code, output = capture_output(handle_pre_tool_use, data)
    assert code == 0
    assert output == {"continue": True}


def test_amber_undecodable_file_edit_denied(vault: Path) -> None:
    """Test files that can't be inspected are treated as holding hidden content."""
    path = vault / "binary.md"
    path.write_bytes(b"\xff\xfe\x00broken")
    code, output = capture_output(handle_pre_tool_use, tool_event("Edit", file_path=str(path)))
    assert code == 2
    assert "contains redacted content" in deny_reason(output)


def test_tool_without_path_allowed(vault: Path) -> None:
    """Test tools that carry no path are allowed."""
    code, output = capture_output(handle_pre_tool_use, tool_event("Glob", pattern="*.md"))
    assert code == 0
    assert output == {"continue": True}


def test_extract_bash_paths() -> None:
    """Test path-like tokens are found and URLs skipped."""
    command = "cat ~/a.md ./b.md dir/c.md plain https://example.com/x"
    assert _extract_bash_paths(command) == ["~/a.md", "./b.md", "dir/c.md"]


def test_extract_bash_paths_unbalanced_quotes() -> None:
    """Test the regex fallback for commands shlex can't split."""
    assert _extract_bash_paths("cat /etc/passwd 'oops") == ["/etc/passwd"]


def test_run_hook_dispatches_pre_tool_use(vault: Path) -> None:
    """Test run_hook reads the event from stdin."""
    event = tool_event("Read", file_path=str(vault / "Private" / "diary.md"))
    with patch.object(sys, "stdin", io.StringIO(json.dumps(event))):
        code, output = capture_output(run_hook)
    assert code == 2
    assert "TLP:RED" in deny_reason(output)


def test_run_hook_unknown_event() -> None:
    """Test other events are passed through."""
    event = {"hook_event_name": "SessionStart"}
    with patch.object(sys, "stdin", io.StringIO(json.dumps(event))):
        code, output = capture_output(run_hook)
    assert code == 0
    assert output == {"continue": True}


def test_run_hook_invalid_json() -> None:
    """Test malformed input is an error."""
    stderr = io.StringIO()
    with (
        patch.object(sys, "stdin", io.StringIO("not json")),
        patch.object(sys, "stderr", stderr),
    ):
        code = run_hook()
    assert code == 1
    assert "Invalid JSON" in stderr.getvalue()
