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

"""Path pattern matching for vault policies."""

CATCH_ALL = "**"
SUBTREE_SUFFIX = "/**"


def matches_pattern(path: str, pattern: str) -> bool:
    """Match a vault-relative path against a policy pattern.

    Supported forms:
    - ``**`` matches every path
    - ``*.ext`` matches by suffix at any depth
    - ``dir/**`` matches the directory itself and everything below it
    - anything else must match exactly
    """
    if not pattern:
        return False

    if pattern == CATCH_ALL:
        return True

    if pattern.startswith("*") and "/" not in pattern:
        return path.endswith(pattern[1:])

    if pattern.endswith(SUBTREE_SUFFIX):
        prefix = pattern[: -len(SUBTREE_SUFFIX)]
        return path == prefix or path.startswith(prefix + "/")

    return path == pattern
