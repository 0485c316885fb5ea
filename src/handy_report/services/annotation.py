"""Per-photo annotation dialog: suggest, edit, overlay, commit."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from handy_report.domain.annotation import AnnotationPhase, AnnotationSession
from handy_report.errors import (
    AnnotationAnalysisFailure,
    AnnotationBusyError,
    AnnotationFailure,
    AnnotationNotReadyError,
    EmptyPromptError,
    NoActiveAnnotationError,
    NoOverlayReturned,
    PhotoNotFoundError,
)
from handy_report.services.assistant import ANNOTATION_FAILED_MESSAGE, ReportAssistant
from handy_report.services.evidence import EvidenceStore

ANALYSIS_FAILED_MESSAGE = "Could not analyze image. Please write your own prompt."

_logger = logging.getLogger(__name__)


@dataclass
class AnnotationWorkflow:
    """Runs at most one annotation dialog at a time.

    Results that arrive after their dialog was closed are dropped, and commits
    are written to the evidence store by photo id.
    """

    assistant: ReportAssistant
    store: EvidenceStore
    active: AnnotationSession | None = None

    async def open(self, photo_id: str) -> AnnotationSession:
        """Open the dialog for a photo, suggesting a prompt if it has none."""
        photo = self.store.get(photo_id)
        if photo is None:
            raise PhotoNotFoundError(f"Unknown photo {photo_id}")
        self.close()
        session = AnnotationSession.for_photo(photo)
        self.active = session

        if photo.is_annotated and photo.annotation_prompt:
            session.prompt = photo.annotation_prompt
            session.phase = AnnotationPhase.PROMPT_READY
            return session

        session.phase = AnnotationPhase.ANALYZING
        try:
            phrase = await self.assistant.analyze_image_for_annotation(photo)
        except AnnotationAnalysisFailure as exc:
            _logger.warning("Annotation analysis failed for %s: %s", photo_id, exc)
            phrase = ""
            error: str | None = ANALYSIS_FAILED_MESSAGE
        else:
            error = None
        if session.closed:
            return session
        session.prompt = phrase
        session.error = error
        session.phase = AnnotationPhase.PROMPT_READY
        return session

    async def annotate(self, prompt: str) -> AnnotationSession:
        """Request an overlay for the active photo using ``prompt``."""
        session = self._require_active()
        if session.busy:
            raise AnnotationBusyError("The annotation dialog is busy")
        if not prompt.strip():
            raise EmptyPromptError("Annotation prompt is empty")
        photo = self.store.get(session.photo_id)
        if photo is None:
            raise PhotoNotFoundError(f"Unknown photo {session.photo_id}")

        session.prompt = prompt
        session.error = None
        session.phase = AnnotationPhase.ANNOTATING
        try:
            overlay = await self.assistant.annotate_image(photo, prompt)
        except NoOverlayReturned as exc:
            _logger.warning("No overlay returned for %s", session.photo_id)
            overlay = None
            error: str | None = exc.commentary or ANNOTATION_FAILED_MESSAGE
        except AnnotationFailure as exc:
            _logger.warning("Annotation failed for %s: %s", session.photo_id, exc)
            overlay = None
            error = ANNOTATION_FAILED_MESSAGE
        else:
            error = None
        if session.closed:
            _logger.info("Dropping annotation for closed dialog %s", session.photo_id)
            return session
        if overlay is not None:
            session.overlay_src = overlay
        session.error = error
        session.phase = AnnotationPhase.PROMPT_READY
        return session

    def commit(self) -> str:
        """Write the overlay onto the photo and close the dialog.

        Returns the prompt that produced the committed overlay.
        """
        session = self._require_active()
        if not session.can_commit or session.overlay_src is None:
            raise AnnotationNotReadyError("There is no finished annotation to save")
        try:
            updated = self.store.apply_annotation(
                session.photo_id, session.overlay_src, session.prompt
            )
            if updated is None:
                raise PhotoNotFoundError(f"Unknown photo {session.photo_id}")
            session.phase = AnnotationPhase.COMMITTED
        finally:
            self.close()
        _logger.info("Committed annotation for %s", session.photo_id)
        return session.prompt

    def close(self) -> None:
        """Discard the active dialog without committing."""
        if self.active is not None:
            self.active.closed = True
            self.active = None

    @asynccontextmanager
    async def dialog(self, photo_id: str) -> AsyncIterator[AnnotationSession]:
        """Open a dialog that is always released when the block exits."""
        session = await self.open(photo_id)
        try:
            yield session
        finally:
            if self.active is session:
                self.close()

    def _require_active(self) -> AnnotationSession:
        if self.active is None:
            raise NoActiveAnnotationError("No annotation dialog is open")
        return self.active
