"""Chat transcript models for report drafting.

The transcript keeps the current draft in a dedicated field and records every
instruction and engine event on one append-only timeline. The flat chat view
(``turns``) is derived from that timeline: a successful refinement overwrites
the most recent ai turn, a failed one appends an apology turn.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class Author(str, Enum):
    """Who wrote a chat turn."""

    USER = "user"
    AI = "ai"


class EventKind(str, Enum):
    """Kinds of engine events kept in the event log."""

    GENERATED = "generated"
    REFINED = "refined"
    REFINEMENT_FAILED = "refinement_failed"


@dataclass(frozen=True)
class ChatTurn:
    """One entry of the chat as the user sees it."""

    author: Author
    content: str


@dataclass(frozen=True)
class UserInstruction:
    """An instruction issued by the user."""

    text: str
    issued_at: datetime


@dataclass(frozen=True)
class SystemEvent:
    """A draft produced by, or a failure reported by, the engine."""

    kind: EventKind
    content: str
    occurred_at: datetime
    detail: str | None = None


TimelineEntry = UserInstruction | SystemEvent


@dataclass
class ReportTranscript:
    """Current draft plus the audit trail that produced it."""

    current_draft: str
    timeline: list[TimelineEntry] = field(default_factory=list)

    @classmethod
    def seeded(cls, draft: str) -> "ReportTranscript":
        """Start a transcript from the initial generated draft."""
        transcript = cls(current_draft=draft)
        transcript.timeline.append(
            SystemEvent(kind=EventKind.GENERATED, content=draft, occurred_at=_now())
        )
        return transcript

    @property
    def instruction_log(self) -> list[UserInstruction]:
        return [entry for entry in self.timeline if isinstance(entry, UserInstruction)]

    @property
    def event_log(self) -> list[SystemEvent]:
        return [entry for entry in self.timeline if isinstance(entry, SystemEvent)]

    def record_instruction(self, text: str) -> UserInstruction:
        """Append a user instruction."""
        instruction = UserInstruction(text=text, issued_at=_now())
        self.timeline.append(instruction)
        return instruction

    def record_refinement(self, draft: str) -> None:
        """Replace the current draft with a refined one."""
        self.current_draft = draft
        self.timeline.append(
            SystemEvent(kind=EventKind.REFINED, content=draft, occurred_at=_now())
        )

    def record_failure(self, message: str, detail: str | None = None) -> None:
        """Log a failed refinement; the current draft is left untouched."""
        self.timeline.append(
            SystemEvent(
                kind=EventKind.REFINEMENT_FAILED,
                content=message,
                occurred_at=_now(),
                detail=detail,
            )
        )

    def turns(self) -> list[ChatTurn]:
        """Return the flat chat view derived from the timeline."""
        turns: list[ChatTurn] = []
        last_ai_index: int | None = None
        for entry in self.timeline:
            if isinstance(entry, UserInstruction):
                turns.append(ChatTurn(author=Author.USER, content=entry.text))
            elif entry.kind is EventKind.REFINED and last_ai_index is not None:
                turns[last_ai_index] = ChatTurn(author=Author.AI, content=entry.content)
            else:
                last_ai_index = len(turns)
                turns.append(ChatTurn(author=Author.AI, content=entry.content))
        return turns


def _now() -> datetime:
    return datetime.now(tz=UTC)
