"""Ordered evidence store and the gallery views over it."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum

from handy_report.domain.photos import PhotoRecord
from handy_report.errors import GalleryReadOnlyError

_logger = logging.getLogger(__name__)


class PhotoFilter(str, Enum):
    """Which records a gallery shows."""

    ALL = "all"
    SELECTED = "selected"


class DisplayMode(str, Enum):
    """Whether a gallery may change selection."""

    EDITABLE = "editable"
    READ_ONLY = "read_only"


class EvidenceStore:
    """Ordered collection of photo records.

    Records are immutable; every mutation swaps the stored record by id, so a
    caller holding an old reference never overwrites newer state.
    """

    def __init__(self) -> None:
        self._records: list[PhotoRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def add(self, records: Iterable[PhotoRecord]) -> list[PhotoRecord]:
        """Append new records, selected by default."""
        added = [replace(record, selected=True) for record in records]
        self._records.extend(added)
        _logger.info("Added %s photo(s), store size=%s", len(added), len(self._records))
        return added

    def get(self, photo_id: str) -> PhotoRecord | None:
        return next((r for r in self._records if r.id == photo_id), None)

    def toggle_select(self, photo_id: str) -> PhotoRecord | None:
        """Flip the selection flag; unknown ids are ignored."""
        index = self._index(photo_id)
        if index is None:
            return None
        record = self._records[index]
        self._records[index] = replace(record, selected=not record.selected)
        return self._records[index]

    def reorder(self, dragged_id: str, drop_id: str) -> bool:
        """Move the dragged record to the drop target's original position."""
        if dragged_id == drop_id:
            return False
        from_index = self._index(dragged_id)
        to_index = self._index(drop_id)
        if from_index is None or to_index is None:
            return False
        record = self._records.pop(from_index)
        self._records.insert(to_index, record)
        return True

    def delete(self, photo_id: str) -> bool:
        index = self._index(photo_id)
        if index is None:
            return False
        del self._records[index]
        return True

    def apply_annotation(
        self, photo_id: str, annotated_src: str, prompt: str
    ) -> PhotoRecord | None:
        """Write a committed overlay onto the current record with this id."""
        index = self._index(photo_id)
        if index is None:
            return None
        self._records[index] = replace(
            self._records[index],
            annotated_src=annotated_src,
            is_annotated=True,
            annotation_prompt=prompt,
        )
        return self._records[index]

    def photos(self, photo_filter: PhotoFilter = PhotoFilter.ALL) -> list[PhotoRecord]:
        if photo_filter is PhotoFilter.SELECTED:
            return [r for r in self._records if r.selected]
        return list(self._records)

    def selected(self) -> list[PhotoRecord]:
        return self.photos(PhotoFilter.SELECTED)

    def clear(self) -> None:
        self._records.clear()

    def _index(self, photo_id: str) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == photo_id:
                return index
        return None


@dataclass(frozen=True)
class GalleryView:
    """A filtered, mode-aware view of the evidence store."""

    store: EvidenceStore
    photo_filter: PhotoFilter = PhotoFilter.ALL
    mode: DisplayMode = DisplayMode.EDITABLE

    @property
    def annotatable(self) -> bool:
        """Read-only galleries open the annotation dialog on click."""
        return self.mode is DisplayMode.READ_ONLY

    def photos(self) -> list[PhotoRecord]:
        return self.store.photos(self.photo_filter)

    def toggle_select(self, photo_id: str) -> PhotoRecord | None:
        if self.mode is DisplayMode.READ_ONLY:
            raise GalleryReadOnlyError("Selection is locked in this view")
        return self.store.toggle_select(photo_id)

    def reorder(self, dragged_id: str, drop_id: str) -> bool:
        return self.store.reorder(dragged_id, drop_id)

    def delete(self, photo_id: str) -> bool:
        return self.store.delete(photo_id)
