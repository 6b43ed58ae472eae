"""Strict parsing of a completed story response into the authoritative segment."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List

from storyweaver.schemas.story import (
    ContentBlock,
    DialogueBlock,
    DialogueLine,
    NarrationBlock,
    StoryResult,
    StorySegment,
)

logger = logging.getLogger(__name__)

FENCED_BLOCK_PATTERN = re.compile(r"^```[\w-]*[ \t]*\n?(.*?)\s*```\Z", re.DOTALL)
LEADING_FENCE_PATTERN = re.compile(r"^```(?:json)?\n?")


def strip_leading_fence(buffer: str) -> str:
    """Drop an opening ```/```json marker from a buffer that is still streaming."""

    if buffer.startswith("```"):
        return LEADING_FENCE_PATTERN.sub("", buffer, count=1)
    return buffer


def _strip_code_fence(text: str) -> str:
    match = FENCED_BLOCK_PATTERN.match(text)
    if match:
        return match.group(1)
    return text


def _slice_outer_braces(text: str) -> str:
    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return text[first_brace:last_brace + 1]
    return text


def _load_payload(raw: str) -> dict:
    candidate = _strip_code_fence(raw.strip())
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        payload = json.loads(_slice_outer_braces(candidate))
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _coerce_block(item: Any) -> ContentBlock | None:
    if not isinstance(item, dict):
        return None
    text = item.get("text")
    text = text if isinstance(text, str) else ""
    if item.get("type") == "narration":
        return NarrationBlock(text=text)
    if item.get("type") == "dialogue":
        return DialogueBlock(character=str(item.get("character") or "Unknown"), text=text)
    return None


def _coerce_dialogue(entries: Any) -> List[DialogueLine] | None:
    if not isinstance(entries, list):
        return None
    lines = []
    for entry in entries:
        if isinstance(entry, dict):
            lines.append(
                DialogueLine(
                    character=str(entry.get("character") or ""),
                    text=str(entry.get("text") or ""),
                )
            )
    return lines


def normalize_legacy_segment(segment: StorySegment) -> StorySegment:
    """Promote the flat narration/dialogue shape into ``content`` when it is empty."""

    if segment.content:
        return segment
    content: List[ContentBlock] = []
    if segment.narration:
        content.append(NarrationBlock(text=segment.narration))
    for line in segment.dialogue or []:
        content.append(DialogueBlock(character=line.character, text=line.text))
    return segment.model_copy(update={"content": content})


def mirror_legacy_fields(segment: StorySegment) -> StorySegment:
    """Fill the deprecated narration/dialogue fields from ``content`` when both are absent."""

    if segment.narration or segment.dialogue:
        return segment
    narration = "\n\n".join(b.text for b in segment.content if isinstance(b, NarrationBlock))
    dialogue = [
        DialogueLine(character=b.character, text=b.text)
        for b in segment.content
        if isinstance(b, DialogueBlock)
    ]
    return segment.model_copy(update={"narration": narration, "dialogue": dialogue})


def _degraded_result(raw: str, reasoning: str, error: Exception) -> StoryResult:
    diagnostic = f"Parse error: {error}"
    return StoryResult(
        segment=StorySegment(
            content=[NarrationBlock(text=raw)],
            sceneVisualPrompt="",
            reasoning=reasoning,
            narration=raw,
            dialogue=[],
        ),
        reasoning=f"{reasoning}\n\n{diagnostic}" if reasoning else diagnostic,
    )


def parse_final_segment(raw: str, reasoning: str = "") -> StoryResult:
    """Parse the complete model output into the authoritative story segment.

    Model output is not guaranteed to be bare JSON: a wrapping code fence is
    stripped, then the text between the first ``{`` and the last ``}`` is
    tried. When nothing parses, the raw text becomes a single narration block
    and the error is appended to the reasoning channel instead of raised.
    """
    try:
        payload = _load_payload(raw)
    except (ValueError, RecursionError) as e:
        logger.error("Final story parse failed: %s", e)
        logger.debug("Attempted to parse: %s", raw)
        return _degraded_result(raw, reasoning, e)

    raw_content = payload.get("content")
    blocks = [_coerce_block(item) for item in raw_content] if isinstance(raw_content, list) else []
    narration = payload.get("narration")
    scene_prompt = payload.get("sceneVisualPrompt")

    segment = StorySegment(
        content=[block for block in blocks if block is not None],
        sceneVisualPrompt=scene_prompt if isinstance(scene_prompt, str) else "",
        reasoning=reasoning,
        narration=narration if isinstance(narration, str) else None,
        dialogue=_coerce_dialogue(payload.get("dialogue")),
    )
    segment = mirror_legacy_fields(normalize_legacy_segment(segment))
    return StoryResult(segment=segment, reasoning=reasoning)
