"""Top-level state machine: Capture -> Generating -> Refine -> Preview."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from handy_report.domain.annotation import AnnotationSession
from handy_report.domain.photos import PhotoRecord
from handy_report.domain.stages import PreviewPhoto, ReportPreview, Stage
from handy_report.errors import GenerationFailure, NoPhotosSelectedError, StageError
from handy_report.services.annotation import AnnotationWorkflow
from handy_report.services.dictation import DictationSupervisor, TranscriptCollector
from handy_report.services.drafts import RefinementResult, ReportDraftEngine
from handy_report.services.evidence import (
    DisplayMode,
    EvidenceStore,
    GalleryView,
    PhotoFilter,
)
from handy_report.services.highlight import HighlightMarker, paragraphs
from handy_report.services.suggestions import SuggestionEngine

NO_PHOTOS_MESSAGE = "Please select at least one photo to include in the report."
GENERATION_BANNER = (
    "Failed to generate the report. Please check your connection and try again."
)

_logger = logging.getLogger(__name__)


@dataclass
class StageController:
    """Sequences one report session and owns its shared state."""

    evidence: EvidenceStore
    notes: TranscriptCollector
    drafts: ReportDraftEngine
    annotations: AnnotationWorkflow
    suggestions: SuggestionEngine
    highlighter: HighlightMarker
    dictation: DictationSupervisor | None = None
    stage: Stage = Stage.CAPTURE
    error: str | None = None

    def capture_gallery(self) -> GalleryView:
        return GalleryView(self.evidence, PhotoFilter.ALL, DisplayMode.EDITABLE)

    def evidence_tray(self) -> GalleryView:
        return GalleryView(self.evidence, PhotoFilter.SELECTED, DisplayMode.READ_ONLY)

    def gallery(self) -> GalleryView:
        """Return the gallery shown in the current stage."""
        if self.stage is Stage.CAPTURE:
            return self.capture_gallery()
        return self.evidence_tray()

    def capture_photos(self, records: Iterable[PhotoRecord]) -> list[PhotoRecord]:
        self._require(Stage.CAPTURE, action="add photos")
        return self.evidence.add(records)

    def set_notes(self, text: str) -> None:
        self._require(Stage.CAPTURE, action="edit notes")
        self.notes.replace(text)

    async def generate(self) -> str:
        """Leave Capture and draft the report from the selected photos."""
        self._require(Stage.CAPTURE, action="generate a report")
        selected = self.evidence.selected()
        if not selected:
            self.error = NO_PHOTOS_MESSAGE
            raise NoPhotosSelectedError(NO_PHOTOS_MESSAGE)

        self.error = None
        self._stop_dictation()
        self.stage = Stage.GENERATING
        _logger.info("Stage -> %s", self.stage.value)
        try:
            draft = await self.drafts.generate(selected, self.notes.text)
        except GenerationFailure:
            _logger.exception("Report generation failed")
            self.error = GENERATION_BANNER
            self._abort_generation()
            raise
        except BaseException:
            _logger.warning("Report generation interrupted, back to capture")
            self._abort_generation()
            raise
        self.stage = Stage.REFINE
        _logger.info("Stage -> %s", self.stage.value)
        self.suggestions.schedule(self.suggestions.refresh_prompt_pills(draft))
        return draft

    async def refine(self, instruction: str) -> RefinementResult:
        """Submit a typed instruction, a prompt pill or the suggestion chip."""
        self._require(Stage.REFINE, action="refine the report")
        self.highlighter.clear()
        if instruction.strip() and not self.drafts.is_refining:
            self.suggestions.clear_on_submit()
        result = await self.drafts.refine(instruction)
        if result.succeeded:
            self.highlighter.flag(result.new_sentence)
            self.suggestions.schedule(
                self.suggestions.refresh_prompt_pills(result.draft)
            )
        return result

    async def open_annotation(self, photo_id: str) -> AnnotationSession:
        self._require(Stage.REFINE, action="annotate photos")
        return await self.annotations.open(photo_id)

    async def annotate(self, prompt: str) -> AnnotationSession:
        return await self.annotations.annotate(prompt)

    def commit_annotation(self) -> str:
        """Save the overlay and ask for a follow-up suggestion in the background."""
        prompt = self.annotations.commit()
        if self.drafts.chat is not None:
            self.suggestions.schedule(
                self.suggestions.suggest_after_annotation(self.drafts.chat, prompt)
            )
        return prompt

    def close_annotation(self) -> None:
        self.annotations.close()

    def dismiss_suggestion(self) -> None:
        self.suggestions.dismiss()

    def enter_preview(self) -> ReportPreview:
        self._require(Stage.REFINE, action="preview the report")
        self.annotations.close()
        self.stage = Stage.PREVIEW
        _logger.info("Stage -> %s", self.stage.value)
        return self.preview()

    def return_to_refine(self) -> None:
        self._require(Stage.PREVIEW, action="return to the editor")
        self.stage = Stage.REFINE
        _logger.info("Stage -> %s", self.stage.value)

    def preview(self) -> ReportPreview:
        """Render the current draft with the selected photos in store order."""
        return ReportPreview(
            report_markdown=self.drafts.current_draft,
            photos=[
                PreviewPhoto(id=photo.id, src=photo.display_src)
                for photo in self.evidence.selected()
            ],
            report_date=datetime.now(tz=UTC).date(),
        )

    def reset(self) -> None:
        """Start a new report, discarding every piece of session state."""
        if self.stage not in {Stage.REFINE, Stage.PREVIEW}:
            raise StageError(f"Cannot start a new report from {self.stage.value}")
        self._stop_dictation()
        self.annotations.close()
        self.suggestions.reset()
        self.highlighter.clear()
        self.drafts.reset()
        self.evidence.clear()
        self.notes.clear()
        self.error = None
        self.stage = Stage.CAPTURE
        _logger.info("Session reset")

    def highlighted_paragraph(self) -> int | None:
        return self.highlighter.match(paragraphs(self.drafts.current_draft))

    def snapshot(self) -> dict[str, object]:
        """Return a serializable view of the session."""
        session = self.annotations.active
        transcript = self.drafts.transcript
        gallery = self.gallery()
        return {
            "stage": self.stage.value,
            "error": self.error,
            "notes": self.notes.text,
            "photos": [_serialize_photo(photo) for photo in gallery.photos()],
            "gallery_mode": gallery.mode.value,
            "annotatable": gallery.annotatable,
            "draft": self.drafts.current_draft,
            "turns": [
                {"author": turn.author.value, "content": turn.content}
                for turn in (transcript.turns() if transcript else [])
            ],
            "instructions": [
                {"text": entry.text, "issued_at": entry.issued_at.isoformat()}
                for entry in (transcript.instruction_log if transcript else [])
            ],
            "events": [
                {
                    "kind": event.kind.value,
                    "content": event.content,
                    "detail": event.detail,
                    "occurred_at": event.occurred_at.isoformat(),
                }
                for event in (transcript.event_log if transcript else [])
            ],
            "is_refining": self.drafts.is_refining,
            "highlight": self.highlighter.active(),
            "highlight_paragraph": self.highlighted_paragraph(),
            "prompt_pills": list(self.suggestions.prompt_pills),
            "suggestion": self.suggestions.post_annotation,
            "annotation": _serialize_annotation(session) if session else None,
        }

    def _require(self, stage: Stage, *, action: str) -> None:
        if self.stage is not stage:
            raise StageError(f"Cannot {action} during {self.stage.value}")

    def _abort_generation(self) -> None:
        self.drafts.reset()
        self.stage = Stage.CAPTURE
        _logger.info("Stage -> %s", self.stage.value)

    def _stop_dictation(self) -> None:
        if self.dictation is not None:
            self.dictation.stop()


def _serialize_photo(photo: PhotoRecord) -> dict[str, object]:
    return {
        "id": photo.id,
        "src": photo.display_src,
        "selected": photo.selected,
        "is_annotated": photo.is_annotated,
        "annotation_prompt": photo.annotation_prompt,
    }


def _serialize_annotation(session: AnnotationSession) -> dict[str, object]:
    return {
        "photo_id": session.photo_id,
        "phase": session.phase.value,
        "prompt": session.prompt,
        "overlay_src": session.overlay_src,
        "error": session.error,
        "can_commit": session.can_commit,
    }
