"""Utilities for constructing story prompts for the language model."""

from __future__ import annotations

from typing import List, Optional

from storyweaver.core.config import CORE_RULES, DEFAULT_SCENARIO, JSON_RESPONSE_FORMAT
from storyweaver.schemas.api import CharacterProfile, HistoryMessage, UserProfile

NUMBER_WORDS = ["Zero", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten"]


def number_word(num: int) -> str:
    if 0 <= num < len(NUMBER_WORDS):
        return NUMBER_WORDS[num]
    return str(num)


class PromptBuilder:
    """Builds the system prompt and the chat message list for a story turn."""

    def __init__(
        self,
        max_history_messages: int,
        max_speakers: int = 4,
        min_words: int = 250,
        max_words: int = 600,
    ) -> None:
        self._max_history_messages = max_history_messages
        self._max_speakers = max_speakers
        self._min_words = min_words
        self._max_words = max_words

    def build_system_prompt(
        self,
        characters: List[CharacterProfile],
        template: Optional[str] = None,
        situation: Optional[str] = None,
        user_profile: Optional[UserProfile] = None,
    ) -> str:
        """Return the system prompt for the given cast and scenario template."""

        content = template or DEFAULT_SCENARIO
        core_rules = CORE_RULES.format(min_words=self._min_words, max_words=self._max_words)
        if not characters:
            return content + core_rules + JSON_RESPONSE_FORMAT

        count_word = number_word(len(characters)).upper()
        names = ", ".join(c.name for c in characters)
        content = content.replace("{{COUNT_WORD}}", count_word).replace("{{CHARACTERS}}", names)

        character_list = "\n".join(
            f"{index}. {c.name} – {c.role} {self._character_details(c)}".rstrip()
            for index, c in enumerate(characters, start=1)
        )

        situation_section = ""
        if situation and situation.strip():
            situation_section = f"\n≫≫ SELECTED SITUATION ≪≪\n{situation.strip()}\n"

        prompt = f"""
{content}
{situation_section}
≫≫ ACTIVE CHARACTERS ({count_word}) ≪≪
{character_list}

{self._participation_rules(characters)}

{self._user_context(user_profile)}

{core_rules}

{JSON_RESPONSE_FORMAT}
""".strip()
        return prompt

    def build_messages(
        self,
        system_prompt: str,
        history: List[HistoryMessage],
        new_message: str,
    ) -> List[dict]:
        """Return the chat completion messages: system, recent history, then the user turn."""

        messages = [{"role": "system", "content": system_prompt}]
        for message in history[-self._max_history_messages:]:
            role = "assistant" if message.role == "model" else message.role
            messages.append({"role": role, "content": message.content})
        messages.append({"role": "user", "content": new_message})
        return messages

    @staticmethod
    def _character_details(character: CharacterProfile) -> str:
        details = []
        if character.personality:
            details.append(f"[Personality: {character.personality}]")
        if character.appearance:
            details.append(f"[Appearance: {character.appearance}]")
        if character.speaking_style:
            details.append(f"[Speaking Style: {character.speaking_style}]")
        return " ".join(details)

    def _participation_rules(self, characters: List[CharacterProfile]) -> str:
        count = len(characters)
        if count <= 1:
            return ""
        # Crowded scenes: nearly everyone speaks, capped by the configured maximum.
        min_speakers = max(2, count - 1 if count <= 4 else count - 2)
        max_speakers = max(min_speakers, min(self._max_speakers, count))
        names = ", ".join(c.name for c in characters)
        return f"""
≫≫ CRITICAL: DYNAMIC PARTICIPATION ≪≪
- **CROWDED SCENES**: Between {min_speakers} and {max_speakers} characters must speak in every response.
- **MANDATORY LOOP**: Characters MUST speak multiple times in a single response!
- **INTERACTIVITY**: Characters MUST speak to EACH OTHER, not just react to the situation.
   - **USE NAMES**: When speaking to another character, explicitly use their name.
- ENSURE {names} get equal speaking time overall.
- IF the situation involves a specific character, that character MUST speak.
"""

    @staticmethod
    def _user_context(user_profile: Optional[UserProfile]) -> str:
        if user_profile is None:
            return ""
        name = user_profile.name
        return f"""
≫≫ USER PROFILE ≪≪
The user observing this story is:
- Name: {name}
- Known for: {user_profile.famous}
- Background: {user_profile.life_details}

≫≫ USER INTEGRATION RULES ≪≪
- Characters acknowledge {name}'s presence by name in every response.
- Characters ask {name} questions and seek their opinion.
- Characters reference {name}'s background when it fits the conversation.
"""
