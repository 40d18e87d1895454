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

"""File classification from vault policy plus frontmatter override."""

import logging
from pathlib import Path

from .config import FRONTMATTER_KEY, load_policy
from .frontmatter import get_value
from .models import Classification, Tlp, most_restrictive
from .policy import classify
from .vault import find_vault, normalize_path

logger = logging.getLogger(__name__)


def frontmatter_level(content: str) -> Tlp | None:
    """Level declared in a document's frontmatter, if any."""
    value = get_value(content, FRONTMATTER_KEY)
    if value is None:
        return None
    return Tlp.parse(value)


def classify_file(file_path: str | Path) -> Classification | None:
    """Classify a file using its vault's policy and frontmatter.

    Returns None if the file is outside any vault. An unreadable policy
    classifies everything as RED with config_error set. Frontmatter can
    only raise the level the policy assigns.
    """
    vault_root = find_vault(file_path)
    if vault_root is None:
        return None

    abs_path = normalize_path(file_path)
    rel_path = abs_path.relative_to(vault_root).as_posix()

    try:
        policy = load_policy(vault_root)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read policy in %s: %s", vault_root, e)
        return Classification(level=Tlp.RED, rel_path=rel_path, config_error=True)

    level = classify(rel_path, policy)

    try:
        content = abs_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        content = None

    if content is not None:
        declared = frontmatter_level(content)
        if declared is not None:
            level = most_restrictive(level, declared)

    return Classification(level=level, rel_path=rel_path)
