"""Pydantic models for the report API."""

from pydantic import BaseModel, Field


class NotesUpdate(BaseModel):
    """Typed or dictated notes for the report."""

    text: str


class PhotoImport(BaseModel):
    """Images to add, each raw base64 or a data URL, in display order."""

    images: list[str] = Field(min_length=1)


class FrameCapture(BaseModel):
    """A single camera frame as raw base64 or a data URL."""

    image: str


class ReorderRequest(BaseModel):
    """Drag-and-drop move inside a gallery."""

    dragged_id: str
    drop_id: str


class RefineRequest(BaseModel):
    """An instruction, typed or taken from a suggestion."""

    instruction: str


class AnnotateRequest(BaseModel):
    """Prompt describing the detail to highlight."""

    prompt: str


class RefineResponse(BaseModel):
    """Result of a refinement."""

    draft: str
    succeeded: bool
    new_sentence: str | None = None


class PreviewPhotoModel(BaseModel):
    """Photo shown in the final report."""

    id: str
    src: str


class PreviewResponse(BaseModel):
    """Client-facing report preview."""

    report_markdown: str
    report_date: str
    photos: list[PreviewPhotoModel]
