"""Tests for the assistant service."""

import asyncio
import json

import pytest

from handy_report.domain.chat import ChatSession
from handy_report.errors import (
    AnnotationAnalysisFailure,
    AnnotationFailure,
    GenerationFailure,
    NoOverlayReturned,
    RefinementFailure,
    SuggestionFailure,
)
from handy_report.services.assistant import (
    GENERATION_FAILED_MESSAGE,
    PROMPT_SUGGESTIONS_SCHEMA,
    AssistantService,
    ImageEditResult,
)
from tests.conftest import FakeResponsesClient, make_photo


def _service(client: FakeResponsesClient, **kwargs: object) -> AssistantService:
    return AssistantService(
        client=client,
        model="gpt-5.2",
        reasoning_effort="medium",
        store=False,
        retry_delay_seconds=0,
        **kwargs,
    )


def test_generate_sends_images_then_prompt_with_notes() -> None:
    client = FakeResponsesClient(outputs=["# Report"])
    service = _service(client)
    photos = [make_photo("a"), make_photo("b")]

    report = asyncio.run(service.generate_initial_report(photos, "leaky faucet fixed"))

    assert report == "# Report"
    content = client.requests[0]["messages"][0]["content"]
    assert [part["type"] for part in content] == [
        "input_image",
        "input_image",
        "input_text",
    ]
    assert content[0]["image_url"] == photos[0].src
    assert "**Handyman's Notes:**\nleaky faucet fixed" in content[-1]["text"]


def test_generate_omits_empty_notes() -> None:
    client = FakeResponsesClient(outputs=["# Report"])
    service = _service(client)

    asyncio.run(service.generate_initial_report([make_photo("a")], "   "))

    prompt = client.requests[0]["messages"][0]["content"][-1]["text"]
    assert "Handyman's Notes" not in prompt


def test_generate_retries_then_wraps_failure() -> None:
    client = FakeResponsesClient(
        outputs=[RuntimeError("first"), RuntimeError("second")]
    )
    service = _service(client)

    with pytest.raises(GenerationFailure) as exc_info:
        asyncio.run(service.generate_initial_report([make_photo("a")], "notes"))

    assert str(exc_info.value) == GENERATION_FAILED_MESSAGE
    assert len(client.requests) == 2


def test_generate_succeeds_on_retry() -> None:
    client = FakeResponsesClient(outputs=[RuntimeError("flaky"), "# Report"])
    service = _service(client)

    report = asyncio.run(service.generate_initial_report([make_photo("a")], "notes"))

    assert report == "# Report"


def test_start_chat_seeds_history() -> None:
    service = _service(FakeResponsesClient())

    chat = service.start_chat([make_photo("a")], "leaky faucet", "# Draft")

    assert len(chat.history) == 2
    assert chat.history[1] == {"role": "assistant", "content": "# Draft"}
    assert "entire, rewritten report" in chat.instructions


def test_refine_extends_history_only_on_success() -> None:
    client = FakeResponsesClient(
        outputs=["# Draft two", RuntimeError("a"), RuntimeError("b")]
    )
    service = _service(client)
    chat = service.start_chat([make_photo("a")], "notes", "# Draft")

    assert asyncio.run(service.refine_report(chat, "shorter")) == "# Draft two"
    assert len(chat.history) == 4
    assert client.requests[0]["instructions"] == chat.instructions

    with pytest.raises(RefinementFailure):
        asyncio.run(service.refine_report(chat, "longer"))
    assert len(chat.history) == 4


def test_analyze_cleans_phrase() -> None:
    client = FakeResponsesClient(outputs=['"the new shut-off valve."\n'])
    service = _service(client)

    phrase = asyncio.run(service.analyze_image_for_annotation(make_photo("a")))

    assert phrase == "the new shut-off valve"


def test_analyze_empty_phrase_fails() -> None:
    client = FakeResponsesClient(outputs=['""'])
    service = _service(client)

    with pytest.raises(AnnotationAnalysisFailure):
        asyncio.run(service.analyze_image_for_annotation(make_photo("a")))


def test_annotate_returns_png_data_url() -> None:
    client = FakeResponsesClient(image_results=[ImageEditResult(image_base64="aW1n")])
    service = _service(client)
    photo = make_photo("a")

    overlay = asyncio.run(service.annotate_image(photo, "the washer"))

    assert overlay == "data:image/png;base64,aW1n"
    assert client.requests[0]["image_data_url"] == photo.src
    assert "the washer" in client.requests[0]["prompt"]


def test_annotate_without_image_passes_commentary() -> None:
    client = FakeResponsesClient(
        image_results=[ImageEditResult(image_base64=None, text=" No valve visible. ")]
    )
    service = _service(client)

    with pytest.raises(NoOverlayReturned) as exc_info:
        asyncio.run(service.annotate_image(make_photo("a"), "the valve"))

    assert exc_info.value.commentary == "No valve visible."


def test_annotate_transport_error_is_annotation_failure() -> None:
    client = FakeResponsesClient(image_results=[RuntimeError("a"), RuntimeError("b")])
    service = _service(client)

    with pytest.raises(AnnotationFailure) as exc_info:
        asyncio.run(service.annotate_image(make_photo("a"), "the valve"))

    assert not isinstance(exc_info.value, NoOverlayReturned)


def test_suggestion_after_annotation_uses_chat_history() -> None:
    client = FakeResponsesClient(outputs=["Mention the new valve in the summary."])
    service = _service(client)
    chat = ChatSession(
        instructions="refine", history=[{"role": "user", "content": "x"}]
    )

    suggestion = asyncio.run(
        service.get_report_suggestion_after_annotation(chat, "the valve")
    )

    assert suggestion == "Mention the new valve in the summary"
    assert client.requests[0]["messages"][0] == {"role": "user", "content": "x"}
    assert len(chat.history) == 3


def test_suggestion_failure_is_wrapped() -> None:
    client = FakeResponsesClient(outputs=[RuntimeError("offline")])
    service = _service(client)

    with pytest.raises(SuggestionFailure):
        asyncio.run(
            service.get_report_suggestion_after_annotation(
                ChatSession(instructions="refine"), "the valve"
            )
        )


def test_prompt_suggestions_parse_and_cap() -> None:
    output = json.dumps(
        {
            "suggestions": [
                "Add a cost table.",
                " ",
                "Make it shorter",
                "Add dates",
                "Extra",
            ]
        }
    )
    client = FakeResponsesClient(outputs=[output])
    service = _service(client, prompt_pill_count=3)

    pills = asyncio.run(service.get_prompt_suggestions("# Draft"))

    assert pills == ["Add a cost table", "Make it shorter", "Add dates"]
    assert client.requests[0]["schema"] == PROMPT_SUGGESTIONS_SCHEMA
    assert client.requests[0]["schema_name"] == "prompt_suggestions"


def test_prompt_suggestions_malformed_output_fails() -> None:
    client = FakeResponsesClient(outputs=["not json"])
    service = _service(client)

    with pytest.raises(SuggestionFailure):
        asyncio.run(service.get_prompt_suggestions("# Draft"))
