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

"""Vault root discovery."""

import os
from pathlib import Path

from .config import POLICY_FILE


def normalize_path(path: str | Path) -> Path:
    """Absolute, normalized form of a path without resolving symlinks."""
    p = Path(path).expanduser()
    return Path(os.path.normpath(p.absolute()))


def find_vault_from_dir(start: Path) -> Path | None:
    """Walk up from a directory looking for a policy file."""
    for directory in (start, *start.parents):
        if (directory / POLICY_FILE).exists():
            return directory
    return None


def find_vault(file_path: str | Path) -> Path | None:
    """Find the vault root for a file by walking up from its parent directory."""
    return find_vault_from_dir(normalize_path(file_path).parent)


def find_vault_from_cwd() -> Path | None:
    """Find the vault root by walking up from the working directory."""
    return find_vault_from_dir(Path.cwd())
