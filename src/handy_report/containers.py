"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from handy_report.adapters.openai_responses_client import OpenAIResponsesClient
from handy_report.config import Settings
from handy_report.services.annotation import AnnotationWorkflow
from handy_report.services.assistant import AssistantService, ReportAssistant
from handy_report.services.dictation import (
    DictationSupervisor,
    SpeechRecognizer,
    TranscriptCollector,
)
from handy_report.services.drafts import ReportDraftEngine
from handy_report.services.evidence import EvidenceStore
from handy_report.services.highlight import HighlightMarker
from handy_report.services.stages import StageController
from handy_report.services.suggestions import SuggestionEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    assistant: ReportAssistant
    controller: StageController
    close_resources: Callable[[], Awaitable[None]]


def build_controller(
    assistant: ReportAssistant,
    settings: Settings,
    recognizer: SpeechRecognizer | None = None,
) -> StageController:
    """Wire a fresh report session around an assistant.

    Speech capture lives on the host device, so dictation is only supervised
    when the host passes in its recognizer. Without one, notes arrive as
    typed text through ``set_notes``.
    """
    evidence = EvidenceStore()
    notes = TranscriptCollector()
    return StageController(
        evidence=evidence,
        notes=notes,
        drafts=ReportDraftEngine(assistant),
        annotations=AnnotationWorkflow(assistant=assistant, store=evidence),
        suggestions=SuggestionEngine(
            assistant=assistant, pill_count=settings.prompt_pill_count
        ),
        highlighter=HighlightMarker(dwell_seconds=settings.highlight_dwell_seconds),
        dictation=(
            DictationSupervisor(recognizer, notes) if recognizer is not None else None
        ),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    openai_client = OpenAIResponsesClient.create(resolved_settings.openai_api_key)
    assistant = AssistantService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        prompt_pill_count=resolved_settings.prompt_pill_count,
        retry_attempts=resolved_settings.openai_retry_attempts,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        assistant=assistant,
        controller=build_controller(assistant, resolved_settings),
        close_resources=close_resources,
    )
