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

"""Edits applied to the safe view and merged back into the original.

Every operation works on the redacted view of the original, never on the
raw text, so hidden content can neither be matched nor modified. The new
view is then merged with the hidden originals via restore_hidden.
"""

import difflib
from dataclasses import dataclass

from .errors import (
    AmbiguousContentError,
    AmbiguousEditError,
    EditError,
    EditTargetNotFoundError,
    MarkerInjectionError,
    RestorationError,
)
from .models import HiddenChunks
from .redact import (
    contains_marker,
    extract_hidden,
    join_lines,
    restore_chunks,
    safe_view,
    split_lines,
)


@dataclass
class EditResult:
    """Outcome of an edit: the merged raw content plus both views."""

    content: str
    old_view: str
    new_view: str
    hidden: HiddenChunks

    @property
    def changed(self) -> bool:
        return self.old_view != self.new_view


def unescape_shell(text: str) -> str:
    """Undo zsh history-expansion escaping of ``!`` (``\\!`` -> ``!``)."""
    return text.replace("\\!", "!")


def reject_markers(text: str, what: str) -> None:
    """Raise MarkerInjectionError if editor-supplied text holds a placeholder."""
    if contains_marker(text):
        raise MarkerInjectionError(
            f"{what} contains redaction markers; hidden content cannot be edited. "
            "Read the safe view and edit only visible text."
        )


def check_round_trip(original: str) -> tuple[str, HiddenChunks]:
    """Return (view, hidden) for an original whose view restores to itself.

    Raises AmbiguousContentError when visible text already contains a
    placeholder literal, since markers could then not be told apart.
    """
    view, _ = safe_view(original)
    hidden = extract_hidden(original)
    try:
        restored = restore_chunks(view, hidden)
    except RestorationError as e:
        raise AmbiguousContentError(
            f"Original contains literal redaction markers in visible text ({e.summary()})"
        ) from e
    if restored != original:
        raise AmbiguousContentError("Original does not survive a redaction round trip")
    return view, hidden


def _merge(view: str, new_view: str, hidden: HiddenChunks) -> EditResult:
    return EditResult(
        content=restore_chunks(new_view, hidden),
        old_view=view,
        new_view=new_view,
        hidden=hidden,
    )


def edit_content(original: str, old: str, new: str) -> EditResult:
    """Replace the single visible occurrence of ``old`` with ``new``."""
    if not old:
        raise EditError("old_string must not be empty")
    reject_markers(old, "old_string")
    reject_markers(new, "new_string")

    view, hidden = check_round_trip(original)
    count = view.count(old)
    if count == 0:
        raise EditTargetNotFoundError("old_string not found in visible content")
    if count > 1:
        raise AmbiguousEditError(f"old_string found {count} times; it must be unique", count)

    return _merge(view, view.replace(old, new, 1), hidden)


def insert_content(original: str, marker: str, text: str, before: bool) -> EditResult:
    """Insert ``text`` as new line(s) before or after a unique marker line.

    The marker matches a visible line when both are equal after trimming.
    """
    trimmed_marker = marker.strip()
    if not trimmed_marker:
        raise EditError("marker must not be empty")
    reject_markers(text, "content")

    view, hidden = check_round_trip(original)
    lines = split_lines(view)
    found = [idx for idx, line in enumerate(lines) if line.strip() == trimmed_marker]
    if not found:
        raise EditTargetNotFoundError("marker not found in visible content")
    if len(found) > 1:
        raise AmbiguousEditError(
            f"marker found {len(found)} times; it must be unique", len(found)
        )

    idx = found[0] if before else found[0] + 1
    lines.insert(idx, text)
    return _merge(view, join_lines(lines, view), hidden)


def write_content(original: str | None, new_view: str) -> EditResult:
    """Replace the whole view. ``original`` is None for a new file."""
    if not new_view:
        raise EditError("Refusing to write empty content")

    view, hidden = check_round_trip(original or "")
    if not hidden and contains_marker(new_view):
        raise MarkerInjectionError(
            "New content contains redaction markers but the original has no hidden "
            "content to restore. This would write literal marker text."
        )
    return _merge(view, new_view, hidden)


def render_diff(old_view: str, new_view: str, path: str, human: bool = False) -> str:
    """Diff two safe views. Empty string if they are equal."""
    if old_view == new_view:
        return ""
    old_lines = old_view.splitlines()
    new_lines = new_view.splitlines()
    if not human:
        return "\n".join(
            difflib.unified_diff(
                old_lines, new_lines, fromfile=f"a/{path}", tofile=f"b/{path}", lineterm=""
            )
        )

    out: list[str] = []
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        out.append(f":{i1 + 1}")
        out.extend(f"- {line}" for line in old_lines[i1:i2])
        out.extend(f"+ {line}" for line in new_lines[j1:j2])
    return "\n".join(out)
