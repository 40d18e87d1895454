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

"""YAML frontmatter access for markdown documents."""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DELIMITER = "---"


def split_frontmatter(content: str) -> tuple[str, str | None] | None:
    """Split a document into (yaml_text, rest).

    The header starts with a first line of exactly ``---`` and ends at the
    next such line. ``rest`` is everything after the closing line's newline,
    or None if the closing line ends the document. Returns None when there
    is no header.
    """
    lines = content.split("\n")
    if lines[0].rstrip("\r") != DELIMITER:
        return None
    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r") == DELIMITER:
            yaml_text = "\n".join(lines[1:idx])
            rest = "\n".join(lines[idx + 1 :]) if idx + 1 < len(lines) else None
            return yaml_text, rest
    return None


def _load_mapping(yaml_text: str) -> dict[Any, Any] | None:
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        logger.debug("Ignoring malformed frontmatter: %s", e)
        return None
    return data if isinstance(data, dict) else None


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return str(yaml.safe_dump(value, default_flow_style=True, allow_unicode=True)).strip()
    return str(value)


def get_value(content: str, key: str) -> str | None:
    """Get a frontmatter value as a string. Returns None if not present."""
    parts = split_frontmatter(content)
    if parts is None:
        return None
    mapping = _load_mapping(parts[0])
    if mapping is None:
        return None
    value = mapping.get(key)
    if value is None:
        return None
    return _to_str(value)


def _dump(mapping: dict[Any, Any]) -> str:
    return str(
        yaml.safe_dump(mapping, default_flow_style=False, sort_keys=False, allow_unicode=True)
    )


def set_value(content: str, key: str, value: str) -> str:
    """Set a frontmatter key, creating the header if missing."""
    parts = split_frontmatter(content)
    if parts is None:
        header = _dump({key: value})
        return f"{DELIMITER}\n{header}{DELIMITER}\n\n{content}"

    yaml_text, rest = parts
    mapping = _load_mapping(yaml_text) or {}
    mapping[key] = value
    header = _dump(mapping)
    if rest is None:
        return f"{DELIMITER}\n{header}{DELIMITER}"
    return f"{DELIMITER}\n{header}{DELIMITER}\n{rest}"


def read_md_files(directory: Path) -> list[Path]:
    """List .md files in a directory (non-recursive), sorted by name."""
    try:
        return sorted(p for p in directory.iterdir() if p.suffix == ".md" and p.is_file())
    except OSError:
        return []
