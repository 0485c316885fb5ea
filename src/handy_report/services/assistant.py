"""Generative AI collaborator for drafting, refining and annotating reports."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

from pydantic import ValidationError as PydanticValidationError

from handy_report.domain.chat import ChatSession
from handy_report.domain.photos import PhotoRecord
from handy_report.domain.suggestions import PromptSuggestions
from handy_report.errors import (
    AnnotationAnalysisFailure,
    AnnotationFailure,
    GenerationFailure,
    NoOverlayReturned,
    RefinementFailure,
    SuggestionFailure,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_INITIAL_REPORT_PROMPT = """\
You are a helpful assistant for a handyman. Your task is to generate a \
professional work report for a client based on the provided images and notes.
The report should be clear, concise, and instill confidence in the work \
performed. Use Markdown for formatting (e.g., headings, bold text, bullet points).

Structure your response as follows:
1. A brief, friendly opening and summary of the job.
2. A bulleted list detailing the key tasks completed.
3. A concluding sentence reassuring the client.

Here are the details:
{notes_section}
Analyze the images and notes to create the report."""

_CHAT_INSTRUCTIONS = (
    "You are a writing assistant helping a handyman refine a work report for "
    "their client. The user will provide feedback or a command. Your task is to "
    "respond with the **entire, rewritten report** that incorporates their "
    "changes. Always output the full, updated report text. Maintain a "
    "professional, clear, and confident tone. Use Markdown for formatting like "
    "tables, bold text, and lists. The original context is based on photos and "
    "notes the user provided."
)

_ANALYZE_PROMPT = (
    "This photo documents a handyman's job. Name the single most important "
    "visual detail a client should notice, as a short descriptive phrase of at "
    "most ten words (for example: the new shut-off valve under the sink). "
    "Reply with the phrase only."
)

_ANNOTATE_PROMPT = (
    "Edit this photo: draw a clean, professional-looking circle or arrow that "
    "highlights {prompt}. Keep everything else in the photo unchanged. If you "
    "cannot find it, explain briefly why instead of returning an image."
)

_SUGGESTION_INSTRUCTIONS = (
    "You help a handyman decide what to ask for next while editing a client "
    "report. Reply with a single short command of at most fifteen words, with "
    "no quotes and no explanation."
)

_AFTER_ANNOTATION_PROMPT = (
    'I just annotated one of the photos to highlight "{prompt}". Suggest one '
    "command I could give you to mention this annotated photo in the report."
)

_PILLS_PROMPT = (
    "Here is the current draft of a handyman's client report:\n\n{draft}\n\n"
    "Suggest up to {count} short follow-up instructions (at most six words "
    "each) the handyman could give to improve it, such as 'Add a cost table'."
)

PROMPT_SUGGESTIONS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "suggestions": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["suggestions"],
    "additionalProperties": False,
}

GENERATION_FAILED_MESSAGE = "The AI failed to generate a report. Please try again."
REFINEMENT_FAILED_MESSAGE = "The AI failed to refine the report. Please try again."
ANNOTATION_FAILED_MESSAGE = "The AI failed to annotate the image. Please try again."


@dataclass(frozen=True)
class ImageEditResult:
    """Outcome of an image edit; ``image_base64`` is None when only text came back."""

    image_base64: str | None
    text: str = ""


class ResponsesClient(Protocol):
    """Interface for LLM text and image calls."""

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
        """Return the model's text output."""

    async def edit_image(
        self,
        *,
        model: str,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> ImageEditResult:
        """Ask the model for an edited version of an image."""


class ReportAssistant(Protocol):
    """Operations the report workflow needs from the generative AI service."""

    async def generate_initial_report(
        self, photos: list[PhotoRecord], notes: str
    ) -> str:
        """Draft a report. Raises GenerationFailure."""

    def start_chat(
        self, photos: list[PhotoRecord], notes: str, initial_report: str
    ) -> ChatSession:
        """Create the conversation used for every later refinement."""

    async def refine_report(self, chat: ChatSession, instruction: str) -> str:
        """Return the fully rewritten report. Raises RefinementFailure."""

    async def analyze_image_for_annotation(self, photo: PhotoRecord) -> str:
        """Suggest a phrase to annotate. Raises AnnotationAnalysisFailure."""

    async def annotate_image(self, photo: PhotoRecord, prompt: str) -> str:
        """Return an overlay data URL. Raises NoOverlayReturned or AnnotationFailure."""

    async def get_report_suggestion_after_annotation(
        self, chat: ChatSession, prompt: str
    ) -> str:
        """Suggest one instruction about an annotation. Raises SuggestionFailure."""

    async def get_prompt_suggestions(self, draft: str) -> list[str]:
        """Suggest follow-up instructions. Raises SuggestionFailure."""


@dataclass
class AssistantService(ReportAssistant):
    """Builds prompts, parses results and maps failures for the workflow."""

    client: ResponsesClient
    model: str
    reasoning_effort: str | None
    store: bool
    prompt_pill_count: int = 4
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5

    async def generate_initial_report(
        self, photos: list[PhotoRecord], notes: str
    ) -> str:
        notes_section = f"\n**Handyman's Notes:**\n{notes}\n" if notes.strip() else ""
        message = _user_message(
            _INITIAL_REPORT_PROMPT.format(notes_section=notes_section), photos
        )
        try:
            return await self._call_with_retry(
                lambda: self._complete([message]), action="generate"
            )
        except Exception as exc:
            raise GenerationFailure(GENERATION_FAILED_MESSAGE) from exc

    def start_chat(
        self, photos: list[PhotoRecord], notes: str, initial_report: str
    ) -> ChatSession:
        opening = _user_message(
            f'Here are my initial notes: "{notes}". Based on these and the images, '
            "you generated a first draft.",
            photos,
        )
        return ChatSession(
            instructions=_CHAT_INSTRUCTIONS,
            history=[opening, _assistant_message(initial_report)],
        )

    async def refine_report(self, chat: ChatSession, instruction: str) -> str:
        message = _user_message(instruction)
        try:
            text = await self._call_with_retry(
                lambda: self._complete(
                    [*chat.history, message], instructions=chat.instructions
                ),
                action="refine",
            )
        except Exception as exc:
            raise RefinementFailure(REFINEMENT_FAILED_MESSAGE) from exc
        chat.history.extend([message, _assistant_message(text)])
        return text

    async def analyze_image_for_annotation(self, photo: PhotoRecord) -> str:
        message = _user_message(_ANALYZE_PROMPT, [photo])
        try:
            text = await self._call_with_retry(
                lambda: self._complete([message]), action=f"analyze:{photo.id}"
            )
        except Exception as exc:
            raise AnnotationAnalysisFailure("Could not analyze image") from exc
        phrase = _clean_phrase(text)
        if not phrase:
            raise AnnotationAnalysisFailure("The model returned an empty phrase")
        return phrase

    async def annotate_image(self, photo: PhotoRecord, prompt: str) -> str:
        try:
            result = await self._call_with_retry(
                lambda: self.client.edit_image(
                    model=self.model,
                    store=self.store,
                    image_data_url=photo.src,
                    prompt=_ANNOTATE_PROMPT.format(prompt=prompt),
                ),
                action=f"annotate:{photo.id}",
            )
        except Exception as exc:
            raise AnnotationFailure(ANNOTATION_FAILED_MESSAGE) from exc
        if not result.image_base64:
            raise NoOverlayReturned(result.text.strip() or None)
        return f"data:image/png;base64,{result.image_base64}"

    async def get_report_suggestion_after_annotation(
        self, chat: ChatSession, prompt: str
    ) -> str:
        message = _user_message(_AFTER_ANNOTATION_PROMPT.format(prompt=prompt))
        try:
            text = await self._complete(
                [*chat.history, message], instructions=_SUGGESTION_INSTRUCTIONS
            )
        except Exception as exc:
            raise SuggestionFailure("Could not suggest an instruction") from exc
        chat.history.extend([message, _assistant_message(text)])
        suggestion = _clean_phrase(text)
        if not suggestion:
            raise SuggestionFailure("The model returned an empty suggestion")
        return suggestion

    async def get_prompt_suggestions(self, draft: str) -> list[str]:
        message = _user_message(
            _PILLS_PROMPT.format(draft=draft, count=self.prompt_pill_count)
        )
        try:
            text = await self._complete(
                [message],
                schema=PROMPT_SUGGESTIONS_SCHEMA,
                schema_name="prompt_suggestions",
            )
            parsed = PromptSuggestions.model_validate_json(text)
        except PydanticValidationError as exc:
            raise SuggestionFailure("Prompt suggestions were malformed") from exc
        except Exception as exc:
            raise SuggestionFailure("Could not suggest prompts") from exc
        cleaned = [_clean_phrase(item) for item in parsed.suggestions]
        return [item for item in cleaned if item][: self.prompt_pill_count]

    async def _complete(
        self,
        messages: list[dict[str, object]],
        *,
        instructions: str | None = None,
        schema: dict[str, object] | None = None,
        schema_name: str = "structured_output",
    ) -> str:
        return await self.client.complete(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            messages=messages,
            instructions=instructions,
            schema=schema,
            schema_name=schema_name,
        )

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[T]]", *, action: str
    ) -> T:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Assistant %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def _user_message(
    text: str, photos: list[PhotoRecord] | None = None
) -> dict[str, object]:
    content: list[dict[str, object]] = [
        {"type": "input_image", "image_url": photo.src} for photo in photos or []
    ]
    content.append({"type": "input_text", "text": text})
    return {"role": "user", "content": content}


def _assistant_message(text: str) -> dict[str, object]:
    return {"role": "assistant", "content": text}


def _clean_phrase(text: str) -> str:
    """Strip whitespace, wrapping quotes and a trailing period from a phrase."""
    phrase = text.strip().strip("\"'`").strip()
    return phrase.removesuffix(".").strip()


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
