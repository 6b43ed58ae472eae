"""Client wrapper for streaming story completions from an OpenAI-compatible endpoint."""

from __future__ import annotations

import logging
from typing import Iterator, List, Tuple

from dotenv import load_dotenv
from openai import OpenAI

from storyweaver.core.config import FALLBACK_MODELS, settings
from storyweaver.schemas.story import DialogueBlock, DialogueLine, NarrationBlock, StoryResult, StorySegment
from .final_parser import parse_final_segment, strip_leading_fence
from .partial_parser import extract_partial

UNSTABLE_CONNECTION_TEXT = "The connection to the story world seems unstable..."


def connection_error_result(error: Exception) -> StoryResult:
    """Degraded segment shown to the user when the request itself fails."""

    message = (
        f"API Error: {error}. Please check your API key and ensure the endpoint is accessible."
    )
    return StoryResult(
        segment=StorySegment(
            content=[
                NarrationBlock(text=UNSTABLE_CONNECTION_TEXT),
                DialogueBlock(character="System", text=message),
            ],
            sceneVisualPrompt="Static noise and glitchy background",
            narration=UNSTABLE_CONNECTION_TEXT,
            dialogue=[DialogueLine(character="System", text=message)],
        ),
        reasoning=f"Error details: {error!r} | Hint: make sure a valid API key is configured.",
    )


class StoryCompletionClient:
    """Encapsulates story completion streaming and model listing."""

    def __init__(self, logger: logging.Logger) -> None:
        load_dotenv()
        self.logger = logger
        api_key = settings.openai_api_key
        if api_key:
            self.logger.info("OPENAI_API_KEY loaded successfully.")
        else:
            self.logger.warning("WARNING: OPENAI_API_KEY not found in settings or environment.")
        self._client = OpenAI(
            api_key=api_key or "not-set",
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )

    def list_models(self) -> List[str]:
        """Return the model ids served by the endpoint, or a fixed fallback list."""
        try:
            return [model.id for model in self._client.models.list()]
        except Exception as e:
            self.logger.warning("Model listing failed, returning fallback models: %s", e)
            return list(FALLBACK_MODELS)

    def stream_story(
        self,
        messages: List[dict],
        *,
        model: str = settings.story_model,
        temperature: float = settings.temperature,
        top_p: float = settings.top_p,
        max_tokens: int = settings.max_tokens,
    ) -> Iterator[Tuple[str, StoryResult]]:
        """Stream a story completion.

        Yields ``("partial", result)`` after every content chunk, built from the
        whole text received so far, and exactly one ``("final", result)`` once
        the stream ends. Transport failures end the stream with a degraded
        final result instead of raising.
        """
        full_content = ""
        full_reasoning = ""
        try:
            stream = self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                top_p=top_p,
                max_tokens=max_tokens,
                stream=True,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue
                if delta.content:
                    full_content += delta.content
                reasoning_delta = getattr(delta, "reasoning_content", None)
                if reasoning_delta:
                    full_reasoning += reasoning_delta

                segment = extract_partial(strip_leading_fence(full_content))
                yield "partial", StoryResult(segment=segment, reasoning=full_reasoning)
        except Exception as e:
            self.logger.exception("Error generating story with API: %s", e)
            yield "final", connection_error_result(e)
            return

        self.logger.debug("Stream finished: %d content chars, %d reasoning chars.",
                          len(full_content), len(full_reasoning))
        yield "final", parse_final_segment(full_content, full_reasoning)

    def generate_story(self, messages: List[dict], **options) -> StoryResult:
        """Run a completion to the end and return only the final result."""
        final = None
        for event, result in self.stream_story(messages, **options):
            if event == "final":
                final = result
        return final
