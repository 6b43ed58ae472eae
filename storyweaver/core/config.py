from pydantic import Field
from pydantic_settings import BaseSettings


MODEL = "deepseek-ai/deepseek-r1-0528"

FALLBACK_MODELS = [
    "nvidia/llama-3.1-nemotron-70b-instruct",
    "nvidia/llama-3.1-nemotron-8b-instruct",
    "nvidia/llama-3.3-nemotron-70b-instruct",
    "deepseek-ai/deepseek-r1-0528",
    "meta/llama-3.3-70b-instruct",
    "mistralai/mistral-7b-instruct",
]

DEFAULT_SCENARIO = """
≫≫ SCENARIO: FRIENDLY GATHERING ≪≪
You are the collective consciousness of {{COUNT_WORD}} friends who are spending time together. The user is an observer to their interactions.

≫≫ CONTEXT ≪≪
The friends are in a comfortable, familiar setting (like a living room, park, or cafe). They know each other well and have a history of shared experiences.

≫≫ TONE & BEHAVIOR ≪≪
- Warm, supportive, and playful.
- Focus on everyday conversations, shared memories, and lighthearted banter.
- Characters should feel like real people with distinct personalities.
- **LIVELINESS**: Use dynamic verbs, sensory details, and natural speech patterns. Make it feel alive, not scripted.
"""

CORE_RULES = """
≫≫ ETERNAL RULES ≪≪
- NEVER write dialogue for the user. They are the observer.
- ONLY write dialogue for the active characters. DO NOT introduce any other named characters.
- VARY response length: MINIMUM {min_words} words, MAXIMUM {max_words} words.
- Characters should talk extensively and describe their internal thoughts/plans before acting.
- Make it extremely lively with high character interaction.
- Focus on the current interaction and immediate reactions.
"""

JSON_RESPONSE_FORMAT = """
≫≫ RESPONSE FORMAT ≪≪
You must respond with ONLY a valid JSON object in the following format:
{
  "content": [
    { "type": "narration", "text": "Descriptive text..." },
    { "type": "dialogue", "character": "Name", "text": "Spoken dialogue..." },
    { "type": "narration", "text": "More description..." }
  ],
  "sceneVisualPrompt": "A short visual description of the current scene"
}
Do not include any markdown formatting like ```json ... ``` or any other text outside the JSON object."""


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    openai_api_key: str | None = Field(default=None, env="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://integrate.api.nvidia.com/v1",
        env="OPENAI_BASE_URL",
    )
    story_model: str = Field(default=MODEL, env="STORY_MODEL")
    temperature: float = Field(default=0.7)
    top_p: float = Field(default=0.7)
    max_tokens: int = Field(default=63024)
    max_speakers: int = Field(default=4)
    min_words: int = Field(default=250)
    max_words: int = Field(default=600)
    max_history_messages: int = Field(default=20)
    request_timeout: float = Field(default=120.0, env="REQUEST_TIMEOUT")
    database_url: str = Field(
        default="sqlite:///./storyweaver.db",
        env="DATABASE_URL",
    )

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
