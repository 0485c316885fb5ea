"""Notes collection and supervision of continuous dictation."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

_logger = logging.getLogger(__name__)


class TranscriptEventKind(str, Enum):
    """Events emitted by a speech recognizer."""

    INTERIM = "interim"
    FINAL = "final"
    END = "end"
    ERROR = "error"


@dataclass(frozen=True)
class TranscriptEvent:
    """A recognizer event; ``text`` is empty for end and error events."""

    kind: TranscriptEventKind
    text: str = ""


class DictationState(str, Enum):
    """Listening state, used both for intent and for the recognizer's reality."""

    LISTENING = "listening"
    IDLE = "idle"


class SpeechRecognizer(Protocol):
    """Platform speech capture session."""

    def start(self) -> None:
        """Begin capturing audio."""

    def stop(self) -> None:
        """Release the capture session."""


@dataclass
class TranscriptCollector:
    """Accumulates dictated and typed text into one notes string."""

    final_text: str = ""
    interim_text: str = ""

    @property
    def text(self) -> str:
        return self.final_text + self.interim_text

    def replace(self, text: str) -> None:
        """Take manually edited notes as the new committed text."""
        self.final_text = text
        self.interim_text = ""

    def apply(self, event: TranscriptEvent) -> None:
        if event.kind is TranscriptEventKind.FINAL:
            self.final_text += event.text + " "
            self.interim_text = ""
        elif event.kind is TranscriptEventKind.INTERIM:
            self.interim_text = event.text

    def clear(self) -> None:
        self.final_text = ""
        self.interim_text = ""


@dataclass
class DictationSupervisor:
    """Keeps a recognizer running for as long as the caller wants to listen.

    Platforms end recognition sessions on their own after a pause. Whenever the
    recognizer reports an end while the desired state is still listening, the
    supervisor restarts it.
    """

    recognizer: SpeechRecognizer
    collector: TranscriptCollector
    desired_state: DictationState = DictationState.IDLE
    actual_state: DictationState = DictationState.IDLE
    restarts: int = 0

    @property
    def listening(self) -> bool:
        return self.desired_state is DictationState.LISTENING

    def start(self) -> None:
        self.desired_state = DictationState.LISTENING
        if self.actual_state is DictationState.LISTENING:
            return
        self.recognizer.start()
        self.actual_state = DictationState.LISTENING
        _logger.info("Dictation started")

    def stop(self) -> None:
        self.desired_state = DictationState.IDLE
        if self.actual_state is DictationState.IDLE:
            return
        self.recognizer.stop()
        self.actual_state = DictationState.IDLE
        _logger.info("Dictation stopped")

    def handle(self, event: TranscriptEvent) -> None:
        if event.kind is TranscriptEventKind.END:
            self.actual_state = DictationState.IDLE
            if self.desired_state is DictationState.LISTENING:
                self.restarts += 1
                _logger.info("Recognizer ended, restarting (restart %s)", self.restarts)
                self.recognizer.start()
                self.actual_state = DictationState.LISTENING
            return
        if event.kind is TranscriptEventKind.ERROR:
            _logger.warning("Recognizer error: %s", event.text or "unknown")
            self.desired_state = DictationState.IDLE
            self.actual_state = DictationState.IDLE
            return
        self.collector.apply(event)
