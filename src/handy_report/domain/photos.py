"""Domain models for captured evidence photos."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PhotoRecord:
    """A captured or imported photo with its selection and annotation state."""

    id: str
    src: str
    mime_type: str = "image/jpeg"
    selected: bool = True
    is_annotated: bool = False
    annotated_src: str | None = None
    annotation_prompt: str | None = None

    @property
    def display_src(self) -> str:
        """Return the overlay image if one was committed, else the raw photo."""
        return self.annotated_src or self.src
