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

"""Exceptions raised by the redaction and editing pipeline."""


class TlpError(Exception):
    """Base class for all vault-tlp errors."""


class RestorationError(TlpError):
    """Placeholder counts in new content don't match the hidden originals.

    Attributes:
        channel: "block", "inline" or "secret"
        counts: {channel: (markers, originals)} for all three channels
    """

    def __init__(self, message: str, channel: str, counts: dict[str, tuple[int, int]]) -> None:
        super().__init__(message)
        self.channel = channel
        self.counts = counts

    def summary(self) -> str:
        """One-line per-channel count report."""
        return ", ".join(
            f"{channel}: {markers} marker(s) for {originals} original(s)"
            for channel, (markers, originals) in self.counts.items()
        )


class ExcessMarkersError(RestorationError):
    """More placeholders than hidden originals."""


class MissingMarkersError(RestorationError):
    """Fewer placeholders than hidden originals; the edit dropped hidden content."""


class EditError(TlpError):
    """An edit request cannot be applied."""


class MarkerInjectionError(EditError):
    """Editor-supplied text contains a placeholder literal."""


class EditTargetNotFoundError(EditError):
    """The edit target does not occur in the visible content."""


class AmbiguousEditError(EditError):
    """The edit target occurs more than once."""

    def __init__(self, message: str, count: int) -> None:
        super().__init__(message)
        self.count = count


class AmbiguousContentError(EditError):
    """The original's visible text contains placeholder literals."""
