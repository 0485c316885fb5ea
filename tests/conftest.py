"""Shared test fixtures."""

import asyncio
import base64
from dataclasses import dataclass, field

import pytest

from handy_report.config import Settings
from handy_report.containers import AppContainer, build_controller
from handy_report.domain.chat import ChatSession
from handy_report.domain.photos import PhotoRecord
from handy_report.errors import GenerationFailure
from handy_report.services.assistant import (
    ImageEditResult,
    ReportAssistant,
    ResponsesClient,
)
from handy_report.services.dictation import SpeechRecognizer
from handy_report.services.stages import StageController

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"fake-jpeg-body"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"fake-png-body"
OVERLAY_SRC = "data:image/png;base64,b3ZlcmxheQ=="


def make_photo(photo_id: str, *, selected: bool = True) -> PhotoRecord:
    encoded = base64.b64encode(JPEG_BYTES).decode("utf-8")
    return PhotoRecord(
        id=photo_id,
        src=f"data:image/jpeg;base64,{encoded}-{photo_id}",
        selected=selected,
    )


@dataclass
class FakeReportAssistant(ReportAssistant):
    """Scriptable assistant; exceptions in the scripts are raised instead."""

    initial_report: str = "Fixed the leaky faucet. Replaced the worn washer."
    generate_error: Exception | None = None
    refinements: list[str | Exception] = field(default_factory=list)
    analysis: str | Exception = "the new faucet washer"
    overlays: list[str | Exception] = field(default_factory=list)
    annotation_suggestion: str | Exception = "Mention the annotated washer photo"
    pills: list[str] | Exception = field(
        default_factory=lambda: ["Add a cost table", "Make it shorter"]
    )
    gate: asyncio.Event | None = None
    calls: list[tuple[str, object]] = field(default_factory=list)
    suggestion_chats: list[ChatSession] = field(default_factory=list)

    async def generate_initial_report(
        self, photos: list[PhotoRecord], notes: str
    ) -> str:
        self.calls.append(("generate", ([p.id for p in photos], notes)))
        await self._wait()
        if self.generate_error is not None:
            raise self.generate_error
        return self.initial_report

    def start_chat(
        self, photos: list[PhotoRecord], notes: str, initial_report: str
    ) -> ChatSession:
        self.calls.append(("start_chat", [p.id for p in photos]))
        return ChatSession(
            instructions="refine",
            history=[
                {"role": "user", "content": notes},
                {"role": "assistant", "content": initial_report},
            ],
        )

    async def refine_report(self, chat: ChatSession, instruction: str) -> str:
        self.calls.append(("refine", instruction))
        await self._wait()
        outcome = (
            self.refinements.pop(0)
            if self.refinements
            else f"Refined draft for {instruction}."
        )
        if isinstance(outcome, Exception):
            raise outcome
        chat.history.extend(
            [
                {"role": "user", "content": instruction},
                {"role": "assistant", "content": outcome},
            ]
        )
        return outcome

    async def analyze_image_for_annotation(self, photo: PhotoRecord) -> str:
        self.calls.append(("analyze", photo.id))
        await self._wait()
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis

    async def annotate_image(self, photo: PhotoRecord, prompt: str) -> str:
        self.calls.append(("annotate", (photo.src, prompt)))
        await self._wait()
        outcome = self.overlays.pop(0) if self.overlays else OVERLAY_SRC
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def get_report_suggestion_after_annotation(
        self, chat: ChatSession, prompt: str
    ) -> str:
        self.calls.append(("suggest_after_annotation", prompt))
        self.suggestion_chats.append(chat)
        await self._wait()
        if isinstance(self.annotation_suggestion, Exception):
            raise self.annotation_suggestion
        chat.history.append({"role": "user", "content": prompt})
        return self.annotation_suggestion

    async def get_prompt_suggestions(self, draft: str) -> list[str]:
        self.calls.append(("pills", draft))
        if isinstance(self.pills, Exception):
            raise self.pills
        return list(self.pills)

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()


@dataclass
class FakeResponsesClient(ResponsesClient):
    """Fake responses client returning queued outputs."""

    outputs: list[str | Exception] = field(default_factory=list)
    image_results: list[ImageEditResult | Exception] = field(default_factory=list)
    requests: list[dict[str, object]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        messages: list[dict[str, object]],
        instructions: str | None = None,
        schema: dict[str, object] | None = None,
        schema_name: str = "structured_output",
    ) -> str:
        self.requests.append(
            {
                "model": model,
                "messages": list(messages),
                "instructions": instructions,
                "schema": schema,
                "schema_name": schema_name,
            }
        )
        outcome = self.outputs.pop(0) if self.outputs else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def edit_image(
        self,
        *,
        model: str,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> ImageEditResult:
        self.requests.append({"image_data_url": image_data_url, "prompt": prompt})
        outcome = (
            self.image_results.pop(0)
            if self.image_results
            else ImageEditResult(image_base64="aW1n")
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class FakeSpeechRecognizer(SpeechRecognizer):
    """Recognizer that records start/stop calls."""

    starts: int = 0
    stops: int = 0

    def start(self) -> None:
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key")


@pytest.fixture
def assistant() -> FakeReportAssistant:
    return FakeReportAssistant()


@pytest.fixture
def controller(assistant: FakeReportAssistant, settings: Settings) -> StageController:
    return build_controller(assistant, settings)


@pytest.fixture
def failing_assistant() -> FakeReportAssistant:
    return FakeReportAssistant(generate_error=GenerationFailure("model offline"))


@pytest.fixture
def container(
    settings: Settings, assistant: FakeReportAssistant, controller: StageController
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        assistant=assistant,
        controller=controller,
        close_resources=close_resources,
    )
