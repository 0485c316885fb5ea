"""Follow-up instruction suggestions for the refinement chat."""

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field

from handy_report.domain.chat import ChatSession
from handy_report.errors import SuggestionFailure
from handy_report.services.assistant import ReportAssistant

_logger = logging.getLogger(__name__)


@dataclass
class SuggestionEngine:
    """Produces prompt pills and the one-shot post-annotation suggestion.

    Both producers fail silently. Only the newest pill request may publish,
    and a post-annotation suggestion is dropped once an instruction has been
    submitted after it was requested.
    """

    assistant: ReportAssistant
    pill_count: int = 4
    prompt_pills: list[str] = field(default_factory=list)
    post_annotation: str | None = None
    _pill_requests: int = field(default=0, init=False, repr=False)
    _submissions: int = field(default=0, init=False, repr=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    async def refresh_prompt_pills(self, draft: str) -> list[str]:
        """Request pills for ``draft``; only the newest request may publish."""
        self._pill_requests += 1
        request = self._pill_requests
        try:
            pills = await self.assistant.get_prompt_suggestions(draft)
        except SuggestionFailure as exc:
            _logger.warning("Prompt suggestions unavailable: %s", exc)
            pills = []
        if request != self._pill_requests:
            return self.prompt_pills
        self.prompt_pills = pills[: self.pill_count]
        return self.prompt_pills

    async def suggest_after_annotation(
        self, chat: ChatSession, annotation_prompt: str
    ) -> str | None:
        """Ask a forked conversation for one instruction about an annotation."""
        submissions = self._submissions
        try:
            suggestion = await self.assistant.get_report_suggestion_after_annotation(
                chat.fork(), annotation_prompt
            )
        except SuggestionFailure as exc:
            _logger.warning("Post-annotation suggestion unavailable: %s", exc)
            return None
        if submissions != self._submissions:
            return None
        self.post_annotation = suggestion.strip() or None
        return self.post_annotation

    def clear_on_submit(self) -> None:
        """Forget the post-annotation suggestion when an instruction is sent."""
        self._submissions += 1
        self.post_annotation = None

    def dismiss(self) -> None:
        self.post_annotation = None

    def schedule(self, coro: Coroutine[object, object, object]) -> asyncio.Task:
        """Run a suggestion request in the background."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every background request to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def reset(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.prompt_pills = []
        self.post_annotation = None
        self._pill_requests += 1
        self._submissions += 1
