from typing import List, Optional

from pydantic import BaseModel, Field

from storyweaver.schemas.story import StorySegment


class HistoryMessage(BaseModel):
    role: str = Field(example="model", description="'user' or 'model' (sent upstream as 'assistant')")
    content: str


class CharacterProfile(BaseModel):
    name: str = Field(example="Mia")
    role: str = Field(default="", example="The Creative Artist")
    personality: Optional[str] = None
    appearance: Optional[str] = None
    speaking_style: Optional[str] = None


class UserProfile(BaseModel):
    name: str
    famous: str = ""
    life_details: str = ""


class StoryRequest(BaseModel):
    message: str = Field(
        example="Mia, show everyone your new painting!",
        description="The new message from the user",
    )
    session_id: str = Field(
        example="story_1761630008",
        description="Identifier for the story session",
    )
    history: List[HistoryMessage] = Field(default_factory=list)
    characters: List[CharacterProfile] = Field(default_factory=list)
    custom_instruction: Optional[str] = Field(
        default=None,
        description="Scenario template that replaces the default one",
    )
    situation: Optional[str] = None
    user_profile: Optional[UserProfile] = None


class StoryResponse(BaseModel):
    segment: StorySegment
    reasoning: str = ""


class ModelsResponse(BaseModel):
    models: List[str]
