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

"""Configuration locations and policy file loading."""

from pathlib import Path

from .policy import validate_policy

POLICY_FILE = ".tlp"
FRONTMATTER_KEY = "tlp"
GLOBAL_SETTINGS_DIR = Path.home() / ".claude"
PROJECT_SETTINGS_FILE = Path(".claude") / "settings.json"

# Claude Code tools gated by the PreToolUse hook
GUARDED_TOOLS = ("Read", "Write", "Edit", "MultiEdit", "Grep", "Bash")


def get_policy_path(vault_root: Path) -> Path:
    """Get the path to a vault's policy file."""
    return vault_root / POLICY_FILE


def load_policy(vault_root: Path) -> str:
    """Read a vault's policy text. Raises OSError if unreadable."""
    return get_policy_path(vault_root).read_text(encoding="utf-8")


def get_settings_path(global_: bool = False, project_dir: Path | None = None) -> Path:
    """Get the path to the Claude Code settings file."""
    if global_:
        return GLOBAL_SETTINGS_DIR / "settings.json"
    if project_dir is None:
        project_dir = Path.cwd()
    return project_dir / PROJECT_SETTINGS_FILE


def validate_policy_file(path: Path) -> list[str]:
    """Validate a policy file, return list of error messages (empty if valid)."""
    if not path.exists():
        return [f"Policy file not found: {path}"]
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return [f"Cannot read policy: {e}"]
    return validate_policy(text)
