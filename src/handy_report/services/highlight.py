"""Find the first new sentence after a refinement and track its highlight.

Only pure insertions of a distinct sentence are detected. Edits inside an
existing sentence, reordering, and inserted text that duplicates an earlier
sentence all yield no highlight.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

_SENTENCE_RE = re.compile(r"[^.!?\n]*(?:[.!?\n]+|$)")
_PARAGRAPH_RE = re.compile(r"\n\s*\n")


def split_sentences(text: str) -> list[str]:
    """Split text into trimmed sentence-like segments."""
    segments = (match.group(0).strip() for match in _SENTENCE_RE.finditer(text))
    return [segment for segment in segments if segment]


def first_new_sentence(previous: str, new: str) -> str | None:
    """Return the earliest segment of ``new`` that ``previous`` does not contain."""
    seen = set(split_sentences(previous))
    for segment in split_sentences(new):
        if segment not in seen:
            return segment
    return None


def paragraphs(markdown: str) -> list[str]:
    """Split rendered report text into blank-line separated blocks."""
    blocks = (block.strip() for block in _PARAGRAPH_RE.split(markdown))
    return [block for block in blocks if block]


@dataclass
class HighlightMarker:
    """Marks one paragraph for a fixed dwell time after a refinement."""

    dwell_seconds: float = 3.0
    sentence: str | None = None
    expires_at: datetime | None = None

    def flag(self, sentence: str | None, now: datetime | None = None) -> None:
        if not sentence:
            self.clear()
            return
        current = now or datetime.now(tz=UTC)
        self.sentence = sentence
        self.expires_at = current + timedelta(seconds=self.dwell_seconds)

    def clear(self) -> None:
        self.sentence = None
        self.expires_at = None

    def active(self, now: datetime | None = None) -> str | None:
        """Return the flagged sentence while it is still within its dwell time."""
        if self.sentence is None or self.expires_at is None:
            return None
        if (now or datetime.now(tz=UTC)) >= self.expires_at:
            self.clear()
            return None
        return self.sentence

    def match(self, blocks: list[str], now: datetime | None = None) -> int | None:
        """Return the index of the single block to mark, if any."""
        sentence = self.active(now)
        if sentence is None:
            return None
        for index, block in enumerate(blocks):
            if sentence in block:
                return index
        return None
