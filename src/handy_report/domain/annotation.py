"""Models for the per-photo annotation dialog."""

from dataclasses import dataclass
from enum import Enum

from handy_report.domain.photos import PhotoRecord


class AnnotationPhase(str, Enum):
    """Lifecycle of one annotation dialog."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    PROMPT_READY = "prompt_ready"
    ANNOTATING = "annotating"
    COMMITTED = "committed"


@dataclass
class AnnotationSession:
    """Transient state of an open annotation dialog."""

    photo_id: str
    original_src: str
    prompt: str = ""
    overlay_src: str | None = None
    phase: AnnotationPhase = AnnotationPhase.IDLE
    error: str | None = None
    closed: bool = False

    @classmethod
    def for_photo(cls, photo: PhotoRecord) -> "AnnotationSession":
        return cls(
            photo_id=photo.id,
            original_src=photo.src,
            overlay_src=photo.annotated_src,
        )

    @property
    def busy(self) -> bool:
        return self.phase in {AnnotationPhase.ANALYZING, AnnotationPhase.ANNOTATING}

    @property
    def can_commit(self) -> bool:
        return (
            not self.closed
            and self.overlay_src is not None
            and self.phase is AnnotationPhase.PROMPT_READY
        )
