"""Structured story segment models shared by the parsers, client and API."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class NarrationBlock(BaseModel):
    type: Literal["narration"] = "narration"
    text: str = ""


class DialogueBlock(BaseModel):
    type: Literal["dialogue"] = "dialogue"
    character: str = "Unknown"
    text: str = ""

    @property
    def speaker(self) -> str:
        return self.character


ContentBlock = Annotated[Union[NarrationBlock, DialogueBlock], Field(discriminator="type")]


class DialogueLine(BaseModel):
    """Legacy dialogue entry from the flat narration/dialogue response shape."""

    character: str = ""
    text: str = ""


class StorySegment(BaseModel):
    """One model response as ordered blocks plus the scene visual prompt.

    ``narration`` and ``dialogue`` are deprecated mirrors kept so older
    persisted data and renderers keep working.
    """

    content: List[ContentBlock] = Field(default_factory=list)
    sceneVisualPrompt: str = ""
    reasoning: Optional[str] = None
    narration: Optional[str] = None
    dialogue: Optional[List[DialogueLine]] = None


class StoryResult(BaseModel):
    """A segment snapshot together with the reasoning/diagnostic channel."""

    segment: StorySegment
    reasoning: str = ""
