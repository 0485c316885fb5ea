"""Conversation context shared with the generative model."""

import copy
from dataclasses import dataclass, field


@dataclass
class ChatSession:
    """System instructions plus the message history sent on every turn."""

    instructions: str
    history: list[dict[str, object]] = field(default_factory=list)

    def fork(self) -> "ChatSession":
        """Return an independent copy for side-channel exchanges."""
        return ChatSession(
            instructions=self.instructions, history=copy.deepcopy(self.history)
        )
