"""Top-level workflow stages."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class Stage(str, Enum):
    """Phase of the report session."""

    CAPTURE = "capture"
    GENERATING = "generating"
    REFINE = "refine"
    PREVIEW = "preview"


@dataclass(frozen=True)
class PreviewPhoto:
    """Photo as shown in the final report."""

    id: str
    src: str


@dataclass(frozen=True)
class ReportPreview:
    """Client-facing view of the finished report."""

    report_markdown: str
    photos: list[PreviewPhoto]
    report_date: date
