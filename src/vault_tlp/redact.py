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

"""Redaction of #tlp/red sections and secrets, and restoration of the originals.

The safe view of a document is built in two stages:

1. TLP redaction. ``#tlp/red`` alone on a line opens a block that runs until
   a line holding only a boundary tag (``#tlp/amber``, ``#tlp/green``,
   ``#tlp/clear``) or end of file; the block becomes one ``[REDACTED]`` line.
   ``#tlp/red`` mid-line hides up to the nearest boundary tag on the same
   line, or to end of line, as an inline ``[REDACTED]``.
2. Secret redaction. Known token shapes in the TLP-redacted text become
   ``[SECRET REDACTED]``.

Extraction captures, per channel and in document order, exactly the text each
placeholder replaced. Restoration undoes the two stages in reverse order.
"""

import re
from dataclasses import dataclass, field

from .errors import ExcessMarkersError, MissingMarkersError
from .matcher import SECRET_MARKER, SecretMatcher
from .models import HiddenChunks

TLP_RED_MARKER = "#tlp/red"
TLP_BOUNDARY_TAGS = ("#tlp/amber", "#tlp/green", "#tlp/clear")
REDACTED_MARKER = "[REDACTED]"

_REDACTED_RE = re.compile(re.escape(REDACTED_MARKER))
_SECRET_RE = re.compile(re.escape(SECRET_MARKER))

_secret_matcher = SecretMatcher()


def split_lines(text: str) -> list[str]:
    """Split on newlines; a trailing newline does not start another line."""
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def join_lines(lines: list[str], like: str) -> str:
    """Join lines, carrying over the trailing newline of ``like``."""
    output = "\n".join(lines)
    if like.endswith("\n"):
        output += "\n"
    return output


def _inline_spans(line: str) -> list[tuple[int, int]]:
    """(start, end) of each inline red span in a line, left to right."""
    spans: list[tuple[int, int]] = []
    pos = line.find(TLP_RED_MARKER)
    while pos != -1:
        after = pos + len(TLP_RED_MARKER)
        closest: tuple[int, int] | None = None  # (position, tag length)
        for tag in TLP_BOUNDARY_TAGS:
            idx = line.find(tag, after)
            if idx != -1 and (closest is None or idx < closest[0]):
                closest = (idx, len(tag))
        # No boundary: hide to end of line
        end = len(line) if closest is None else closest[0] + closest[1]
        spans.append((pos, end))
        pos = line.find(TLP_RED_MARKER, end)
    return spans


@dataclass
class _Segment:
    """A block region, or a single line outside any block."""

    lines: list[str]
    spans: list[tuple[int, int]] = field(default_factory=list)
    block: bool = False

    def redacted(self) -> str:
        if self.block:
            return REDACTED_MARKER
        line = self.lines[0]
        if not self.spans:
            return line
        parts: list[str] = []
        pos = 0
        for start, end in self.spans:
            parts.append(line[pos:start])
            parts.append(REDACTED_MARKER)
            pos = end
        parts.append(line[pos:])
        return "".join(parts)

    @property
    def whole_line(self) -> bool:
        """True if this is a block, or a line that redacts to a bare placeholder.

        Such lines are indistinguishable from a block in the safe view, so
        their original goes to the block channel.
        """
        if self.block:
            return True
        return bool(self.spans) and self.redacted().strip() == REDACTED_MARKER

    def original(self) -> str:
        return "\n".join(self.lines)


def _scan(text: str) -> list[_Segment]:
    """Single forward pass splitting text into block regions and plain lines."""
    segments: list[_Segment] = []
    block: list[str] | None = None

    for line in split_lines(text):
        trimmed = line.strip()
        if block is not None:
            block.append(line)
            if trimmed in TLP_BOUNDARY_TAGS:
                segments.append(_Segment(block, block=True))
                block = None
            continue
        if trimmed == TLP_RED_MARKER:
            block = [line]
            continue
        segments.append(_Segment([line], _inline_spans(line)))

    # Unterminated block runs to end of file
    if block is not None:
        segments.append(_Segment(block, block=True))

    return segments


def redact_tlp_sections(content: str) -> str:
    """Replace #tlp/red blocks and inline spans with [REDACTED]."""
    return join_lines([seg.redacted() for seg in _scan(content)], content)


def redact_secrets(content: str) -> tuple[str, bool]:
    """Replace known secret tokens with [SECRET REDACTED].

    Returns (redacted_content, secrets_found).
    """
    found = False
    lines: list[str] = []
    for line in split_lines(content):
        redacted, count = _secret_matcher.redact_line(line)
        found = found or count > 0
        lines.append(redacted)
    return join_lines(lines, content), found


def safe_view(content: str) -> tuple[str, bool]:
    """Full redaction pipeline: TLP sections first, then secrets."""
    return redact_secrets(redact_tlp_sections(content))


def extract_tlp_blocks(content: str) -> list[str]:
    """Original text of each whole-line [REDACTED], in document order.

    Each block includes its own #tlp/red and boundary lines.
    """
    return [seg.original() for seg in _scan(content) if seg.whole_line]


def extract_inline_chunks(content: str) -> list[str]:
    """Original text of each inline [REDACTED], in document order.

    Spans inside block regions belong to their block and are not listed.
    """
    chunks: list[str] = []
    for seg in _scan(content):
        if seg.whole_line:
            continue
        line = seg.lines[0]
        chunks.extend(line[start:end] for start, end in seg.spans)
    return chunks


def extract_secrets(tlp_redacted: str) -> list[str]:
    """Each secret match, in document order.

    Run this on TLP-redacted content, the same stage redact_secrets sees,
    so secrets inside hidden blocks are not listed twice.
    """
    secrets: list[str] = []
    for line in split_lines(tlp_redacted):
        secrets.extend(_secret_matcher.find_all(line))
    return secrets


def extract_hidden(content: str) -> HiddenChunks:
    """All three hidden channels of an original document."""
    return HiddenChunks(
        blocks=extract_tlp_blocks(content),
        inline_chunks=extract_inline_chunks(content),
        secrets=extract_secrets(redact_tlp_sections(content)),
    )


def contains_marker(text: str) -> bool:
    """True if text contains either placeholder literal."""
    return REDACTED_MARKER in text or SECRET_MARKER in text


def marker_counts(view: str) -> dict[str, int]:
    """Number of block, inline and secret placeholders in a safe view."""
    counts = {"block": 0, "inline": 0, "secret": 0}
    for line in split_lines(view):
        counts["secret"] += len(_SECRET_RE.findall(line))
        if line.strip() == REDACTED_MARKER:
            counts["block"] += 1
        else:
            counts["inline"] += len(_REDACTED_RE.findall(line))
    return counts


class _Restorer:
    """Hands out hidden originals in order, one channel at a time."""

    DESCRIPTIONS = {
        "block": "[REDACTED] lines than TLP blocks",
        "inline": "inline [REDACTED] than inline TLP chunks",
        "secret": "[SECRET REDACTED] markers than secrets",
    }

    def __init__(self, new_content: str, pools: dict[str, list[str]]) -> None:
        self.new_content = new_content
        self.pools = pools
        self.used = dict.fromkeys(pools, 0)

    def _counts(self) -> dict[str, tuple[int, int]]:
        markers = marker_counts(self.new_content)
        return {channel: (markers[channel], len(pool)) for channel, pool in self.pools.items()}

    def take(self, channel: str) -> str:
        pool = self.pools[channel]
        idx = self.used[channel]
        if idx >= len(pool):
            raise ExcessMarkersError(
                f"More {self.DESCRIPTIONS[channel]} ({len(pool)} available)",
                channel,
                self._counts(),
            )
        self.used[channel] = idx + 1
        return pool[idx]

    def check_all_used(self) -> None:
        for channel, pool in self.pools.items():
            if self.used[channel] != len(pool):
                raise MissingMarkersError(
                    f"Fewer {self.DESCRIPTIONS[channel]} in the original: only "
                    f"{self.used[channel]}/{len(pool)} restored",
                    channel,
                    self._counts(),
                )


def restore_hidden(
    new_content: str,
    tlp_blocks: list[str],
    inline_chunks: list[str],
    secrets: list[str],
) -> str:
    """Put hidden originals back into an edited safe view.

    Secrets are restored first, undoing the last redaction stage. Then a
    line that is exactly [REDACTED] (after trimming) takes the next TLP
    block, and any other [REDACTED] takes the next inline chunk, left to
    right. Restored blocks and inline chunks are never rescanned for
    placeholders.

    Raises ExcessMarkersError if a channel has more placeholders than
    originals, MissingMarkersError if originals are left over.
    """
    restorer = _Restorer(
        new_content,
        {"block": tlp_blocks, "inline": inline_chunks, "secret": secrets},
    )
    result: list[str] = []

    for line in split_lines(new_content):
        line = _SECRET_RE.sub(lambda _: restorer.take("secret"), line)
        if line.strip() == REDACTED_MARKER:
            result.append(restorer.take("block"))
            continue
        result.append(_REDACTED_RE.sub(lambda _: restorer.take("inline"), line))

    restorer.check_all_used()
    return join_lines(result, new_content)


def restore_chunks(new_content: str, hidden: HiddenChunks) -> str:
    """restore_hidden() taking the channels as one HiddenChunks."""
    return restore_hidden(new_content, hidden.blocks, hidden.inline_chunks, hidden.secrets)
