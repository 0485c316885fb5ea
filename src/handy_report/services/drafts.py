"""Report draft engine: initial generation and conversational refinement."""

import logging
from dataclasses import dataclass, field

from handy_report.domain.chat import ChatSession
from handy_report.domain.photos import PhotoRecord
from handy_report.domain.transcript import ReportTranscript
from handy_report.errors import (
    EmptyInstructionError,
    RefinementFailure,
    RefinementInProgressError,
    StageError,
    StaleResponseError,
)
from handy_report.services.assistant import ReportAssistant
from handy_report.services.highlight import first_new_sentence

APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefinementResult:
    """Outcome of one refinement.

    ``draft`` is the current draft afterwards; on failure it is the unchanged
    previous draft. ``new_sentence`` is the first sentence the refinement
    introduced, if any.
    """

    draft: str
    succeeded: bool
    new_sentence: str | None = None


@dataclass
class ReportDraftEngine:
    """Owns the transcript and the conversation behind the current draft."""

    assistant: ReportAssistant
    transcript: ReportTranscript | None = None
    chat: ChatSession | None = None
    _refining: bool = field(default=False, init=False, repr=False)

    @property
    def current_draft(self) -> str:
        return self.transcript.current_draft if self.transcript else ""

    @property
    def is_refining(self) -> bool:
        return self._refining

    async def generate(self, photos: list[PhotoRecord], notes: str) -> str:
        """Draft the report and seed the transcript. Raises GenerationFailure."""
        draft = await self.assistant.generate_initial_report(photos, notes)
        self.transcript = ReportTranscript.seeded(draft)
        if self.chat is None:
            self.chat = self.assistant.start_chat(photos, notes, draft)
        _logger.info(
            "Generated initial report from %s photo(s), %s chars",
            len(photos),
            len(draft),
        )
        return draft

    async def refine(self, instruction: str) -> RefinementResult:
        """Apply one user instruction to the current draft."""
        if not instruction.strip():
            raise EmptyInstructionError("Instruction is empty")
        transcript = self.transcript
        chat = self.chat
        if transcript is None or chat is None:
            raise StageError("There is no draft to refine yet")
        if self._refining:
            raise RefinementInProgressError("A refinement is already running")

        self._refining = True
        transcript.record_instruction(instruction)
        previous = transcript.current_draft
        try:
            draft = await self.assistant.refine_report(chat, instruction)
        except RefinementFailure as exc:
            _logger.warning("Refinement failed: %s", exc)
            if transcript is self.transcript:
                transcript.record_failure(APOLOGY_MESSAGE, detail=str(exc))
            return RefinementResult(draft=previous, succeeded=False)
        finally:
            self._refining = False

        if transcript is not self.transcript:
            _logger.info("Dropping refinement for a transcript that was reset")
            raise StaleResponseError("The report was reset while refining")
        transcript.record_refinement(draft)
        return RefinementResult(
            draft=draft,
            succeeded=True,
            new_sentence=first_new_sentence(previous, draft),
        )

    def reset(self) -> None:
        self.transcript = None
        self.chat = None
