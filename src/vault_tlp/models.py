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

"""Data models for TLP levels, policy rules and hidden content."""

from dataclasses import dataclass, field
from enum import IntEnum


class Tlp(IntEnum):
    """Traffic Light Protocol level. Higher values are more restrictive."""

    CLEAR = 0
    GREEN = 1
    AMBER = 2
    RED = 3

    @classmethod
    def parse(cls, text: str) -> "Tlp | None":
        """Parse a level name (case-insensitive). Returns None if unknown."""
        return cls.__members__.get(text.strip().upper())

    def __str__(self) -> str:
        return self.name


def most_restrictive(a: Tlp, b: Tlp) -> Tlp:
    """Return the more restrictive of two levels."""
    return max(a, b)


@dataclass(frozen=True)
class PolicyRule:
    """A path pattern under a level header in a .tlp policy."""

    level: Tlp
    pattern: str


@dataclass
class Classification:
    """Result of classifying a file inside a vault."""

    level: Tlp
    rel_path: str
    config_error: bool = False


@dataclass
class Match:
    """A secret pattern match within a single line."""

    start: int
    end: int
    text: str
    kind: str


@dataclass
class HiddenChunks:
    """Original text behind each placeholder of one document revision.

    Only valid for the original it was extracted from.
    """

    blocks: list[str] = field(default_factory=list)
    inline_chunks: list[str] = field(default_factory=list)
    secrets: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.blocks or self.inline_chunks or self.secrets)
