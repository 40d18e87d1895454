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

"""Parsing and evaluation of .tlp policy documents.

A policy lists quoted path patterns under level headers::

    # comments allowed
    RED:
      - "*.pdf"
      - "Contacts/**"
    GREEN:
      - "**"

Rules are evaluated in file order and the first match wins, regardless of
which header they appear under. Paths matching nothing are AMBER.
"""

from .models import PolicyRule, Tlp
from .path_matcher import matches_pattern

DEFAULT_LEVEL = Tlp.AMBER

LEVEL_HEADERS = {f"{level.name}:": level for level in Tlp}


def _parse_level_header(line: str) -> Tlp | None:
    return LEVEL_HEADERS.get(line)


def _parse_pattern_line(line: str) -> str | None:
    """Return the quoted pattern of a bullet line, or None."""
    stripped = line.lstrip("-" + " \t")
    if len(stripped) >= 2 and stripped.startswith('"') and stripped.endswith('"'):
        return stripped[1:-1]
    return None


def _is_skipped(line: str) -> bool:
    return not line or line.startswith("#")


def parse_policy(text: str) -> list[PolicyRule]:
    """Parse a policy into rules, in file order.

    Malformed lines and patterns appearing before any level header are
    skipped silently.
    """
    rules: list[PolicyRule] = []
    current: Tlp | None = None

    for raw in text.splitlines():
        line = raw.strip()
        if _is_skipped(line):
            continue

        level = _parse_level_header(line)
        if level is not None:
            current = level
            continue

        pattern = _parse_pattern_line(line)
        if pattern is not None and current is not None:
            rules.append(PolicyRule(level=current, pattern=pattern))

    return rules


def classify_rules(path: str, rules: list[PolicyRule]) -> Tlp:
    """Classify a relative path against parsed rules. First match wins."""
    for rule in rules:
        if matches_pattern(path, rule.pattern):
            return rule.level
    return DEFAULT_LEVEL


def classify(path: str, policy_text: str) -> Tlp:
    """Classify a vault-relative path against policy text."""
    return classify_rules(path, parse_policy(policy_text))


def validate_policy(text: str) -> list[str]:
    """Return messages for lines the classifier would skip (empty if valid)."""
    errors: list[str] = []
    current: Tlp | None = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if _is_skipped(line):
            continue

        level = _parse_level_header(line)
        if level is not None:
            current = level
            continue

        pattern = _parse_pattern_line(line)
        if pattern is None:
            if line.endswith(":"):
                valid = ", ".join(LEVEL_HEADERS)
                errors.append(f"Line {lineno}: unknown level header '{line}' (must be: {valid})")
            else:
                errors.append(f"Line {lineno}: expected a double-quoted pattern, got '{line}'")
        elif current is None:
            errors.append(f"Line {lineno}: pattern '{pattern}' appears before any level header")
        elif not pattern:
            errors.append(f"Line {lineno}: empty pattern never matches")

    return errors
