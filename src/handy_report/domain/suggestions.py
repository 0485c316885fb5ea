"""Models for structured suggestion output."""

from pydantic import BaseModel, Field


class PromptSuggestions(BaseModel):
    """Short follow-up instructions proposed for the current draft."""

    suggestions: list[str] = Field(default_factory=list)
