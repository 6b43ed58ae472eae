"""Story orchestration that coordinates prompt building and streamed completions."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, List, Tuple

from storyweaver.core.config import settings
from storyweaver.schemas.api import StoryRequest
from storyweaver.schemas.story import StoryResult
from .openai_client import StoryCompletionClient
from .prompt_builder import PromptBuilder

_STREAM_END = object()


class StoryTeller:
    """Generates story segments for a roleplay session."""

    def __init__(
        self,
        logger: logging.Logger,
        max_history_messages: int = settings.max_history_messages,
    ) -> None:
        self.logger = logger
        self.prompt_builder = PromptBuilder(
            max_history_messages,
            max_speakers=settings.max_speakers,
            min_words=settings.min_words,
            max_words=settings.max_words,
        )
        self.client = StoryCompletionClient(logger)
        self.logger.info("StoryTeller initialized.")

    # ----------------------- Public API -----------------------
    def build_messages(self, request: StoryRequest) -> List[dict]:
        system_prompt = self.prompt_builder.build_system_prompt(
            request.characters,
            template=request.custom_instruction,
            situation=request.situation,
            user_profile=request.user_profile,
        )
        return self.prompt_builder.build_messages(system_prompt, request.history, request.message)

    def list_models(self) -> List[str]:
        return self.client.list_models()

    def generate(self, request: StoryRequest) -> StoryResult:
        """Generate the next story segment and return the final result."""

        self.logger.debug("User message: %s", request.message)
        messages = self.build_messages(request)
        result = self.client.generate_story(messages)
        self.logger.debug("Generated %d blocks.", len(result.segment.content))
        return result

    async def stream(self, request: StoryRequest) -> AsyncIterator[Tuple[str, StoryResult]]:
        """Stream ``(event, result)`` updates without blocking the event loop.

        The blocking SDK stream runs in a worker thread; once the consumer stops
        iterating no further updates are forwarded and the SDK stream is closed.
        """
        self.logger.debug("User message: %s", request.message)
        messages = self.build_messages(request)
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        cancelled = False

        def _run_blocking():
            updates = self.client.stream_story(messages)
            try:
                for update in updates:
                    if cancelled:
                        break
                    loop.call_soon_threadsafe(queue.put_nowait, update)
            finally:
                updates.close()
                loop.call_soon_threadsafe(queue.put_nowait, _STREAM_END)

        thread_task = asyncio.create_task(asyncio.to_thread(_run_blocking))
        try:
            while True:
                update = await queue.get()
                if update is _STREAM_END:
                    break
                yield update
        finally:
            cancelled = True
        # ensure the worker finishes
        await thread_task
