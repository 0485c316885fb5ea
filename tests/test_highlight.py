"""Tests for new-sentence detection and highlight dwell."""

from datetime import UTC, datetime, timedelta

from handy_report.services.highlight import (
    HighlightMarker,
    first_new_sentence,
    paragraphs,
    split_sentences,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def test_split_sentences_trims_segments() -> None:
    assert split_sentences("Fixed it.  Tested twice!\nAll good") == [
        "Fixed it.",
        "Tested twice!",
        "All good",
    ]


def test_first_new_sentence_detects_appended_sentence() -> None:
    assert first_new_sentence("A. B.", "A. B. C.") == "C."


def test_first_new_sentence_detects_inserted_sentence() -> None:
    assert first_new_sentence("A. C.", "A. B. C.") == "B."


def test_first_new_sentence_none_for_identical_text() -> None:
    assert first_new_sentence("A. B.", "A. B.") is None


def test_first_new_sentence_none_for_reordering() -> None:
    assert first_new_sentence("A. B.", "B. A.") is None


def test_first_new_sentence_none_for_duplicate_insertion() -> None:
    assert first_new_sentence("A. B.", "A. A. B.") is None


def test_paragraphs_split_on_blank_lines() -> None:
    text = "# Report\n\nFixed the tap.\nTested it.\n\n\n- washer\n- valve"

    assert paragraphs(text) == [
        "# Report",
        "Fixed the tap.\nTested it.",
        "- washer\n- valve",
    ]


def test_marker_matches_first_containing_block_until_dwell_ends() -> None:
    marker = HighlightMarker(dwell_seconds=3.0)
    blocks = ["Intro.", "Replaced the washer. Cost table below.", "Cost table below."]

    marker.flag("Cost table below.", now=NOW)

    assert marker.match(blocks, now=NOW + timedelta(seconds=1)) == 1
    assert marker.match(blocks, now=NOW + timedelta(seconds=3)) is None
    assert marker.sentence is None


def test_marker_flag_none_clears_previous() -> None:
    marker = HighlightMarker()
    marker.flag("Old.", now=NOW)

    marker.flag(None, now=NOW)

    assert marker.active(now=NOW) is None


def test_marker_clear_removes_highlight() -> None:
    marker = HighlightMarker()
    marker.flag("Sentence.", now=NOW)

    marker.clear()

    assert marker.match(["Sentence."], now=NOW) is None


def test_marker_without_matching_block_marks_nothing() -> None:
    marker = HighlightMarker()
    marker.flag("Missing.", now=NOW)

    assert marker.match(["Other."], now=NOW) is None
    assert marker.active(now=NOW) == "Missing."
