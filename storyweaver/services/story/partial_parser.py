"""Best-effort decoding of a streamed, still-incomplete story JSON document.

The model emits one fixed response shape, so instead of a streaming JSON
tokenizer the buffer is re-scanned on every chunk with tolerant patterns whose
string captures do not require the closing quote. Nothing here keeps state
between calls: pass the whole accumulated buffer each time.
"""

from __future__ import annotations

import json
import logging
import re

from storyweaver.schemas.story import (
    DialogueBlock,
    DialogueLine,
    NarrationBlock,
    StorySegment,
)

logger = logging.getLogger(__name__)

# Body of a JSON string literal, closing quote optional.
_STRING_BODY = r'([^"\\]*(?:\\.[^"\\]*)*)'

CONTENT_ITEM_PATTERN = re.compile(
    r'\{\s*"type"\s*:\s*"([^"]+)"\s*,\s*'
    r'(?:"character"\s*:\s*"((?:[^"\\]|\\.)*)"\s*,\s*)?'
    r'"text"\s*:\s*"' + _STRING_BODY
)
LEGACY_NARRATION_PATTERN = re.compile(r'"narration"\s*:\s*"' + _STRING_BODY)
LEGACY_DIALOGUE_PATTERN = re.compile(
    r'\{\s*"character"\s*:\s*"((?:[^"\\]|\\.)*)"\s*,\s*"text"\s*:\s*"' + _STRING_BODY
)
SCENE_PROMPT_PATTERN = re.compile(r'"sceneVisualPrompt"\s*:\s*"' + _STRING_BODY)

_TRAILING_BACKSLASHES = re.compile(r"\\+\Z")
_TRAILING_PARTIAL_UNICODE = re.compile(r"(?<!\\)((?:\\\\)*)\\u[0-9a-fA-F]{0,3}\Z")
_TRAILING_HIGH_SURROGATE = re.compile(r"(?<!\\)((?:\\\\)*)\\u[dD][89abAB][0-9a-fA-F]{2}\Z")

_DECODER = json.JSONDecoder(strict=False)


def unescape_json_fragment(fragment: str) -> str:
    """Decode the body of a JSON string literal that may be cut short.

    A dangling escape at the very end (a lone backslash, an unfinished
    ``\\uXXXX`` or the first half of a surrogate pair) is dropped because it
    cannot be decoded yet. If decoding still fails the fragment is returned
    as-is.
    """
    body = fragment
    trailing = _TRAILING_BACKSLASHES.search(body)
    if trailing and len(trailing.group(0)) % 2 == 1:
        body = body[:-1]
    body = _TRAILING_PARTIAL_UNICODE.sub(r"\1", body)
    body = _TRAILING_HIGH_SURROGATE.sub(r"\1", body)
    try:
        return _DECODER.decode(f'"{body}"')
    except ValueError:
        return fragment


def _scan_content_blocks(buffer: str, result: StorySegment) -> None:
    section = buffer[buffer.index('"content"'):]
    for match in CONTENT_ITEM_PATTERN.finditer(section):
        block_type, character, text = match.groups()
        text = unescape_json_fragment(text)
        if block_type == "narration":
            result.content.append(NarrationBlock(text=text))
        elif block_type == "dialogue":
            speaker = unescape_json_fragment(character) if character else ""
            result.content.append(DialogueBlock(character=speaker or "Unknown", text=text))


def _scan_legacy_blocks(buffer: str, result: StorySegment) -> None:
    result.narration = ""
    result.dialogue = []

    narration_match = LEGACY_NARRATION_PATTERN.search(buffer)
    if narration_match:
        text = unescape_json_fragment(narration_match.group(1))
        result.narration = text
        result.content.append(NarrationBlock(text=text))

    dialogue_start = buffer.find('"dialogue"')
    if dialogue_start == -1:
        return
    for match in LEGACY_DIALOGUE_PATTERN.finditer(buffer, dialogue_start):
        character = unescape_json_fragment(match.group(1))
        text = unescape_json_fragment(match.group(2))
        result.dialogue.append(DialogueLine(character=character, text=text))
        result.content.append(DialogueBlock(character=character, text=text))


def extract_partial(buffer: str) -> StorySegment:
    """Return whatever story content is already extractable from ``buffer``.

    ``buffer`` is the full text received so far, a prefix of the final JSON
    document. The last block is usually still open; it is returned with the
    text seen so far. Never raises.
    """
    result = StorySegment()
    try:
        if '"content"' in buffer:
            _scan_content_blocks(buffer, result)
        else:
            _scan_legacy_blocks(buffer, result)

        scene_match = SCENE_PROMPT_PATTERN.search(buffer)
        if scene_match:
            result.sceneVisualPrompt = unescape_json_fragment(scene_match.group(1))
    except Exception as e:  # pragma: no cover
        logger.debug("Partial story parse stopped early: %s", e)
    return result
