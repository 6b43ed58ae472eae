from __future__ import annotations
from typing import AsyncIterator, List, Tuple
from sqlalchemy.orm import Session
from storyweaver.models.db import StoryResponseLog
from storyweaver.schemas.api import StoryRequest
from storyweaver.schemas.story import StoryResult
from storyweaver.services.story.manager import StoryTeller


def generate(teller: StoryTeller, request: StoryRequest) -> StoryResult:
    """Generate the next story segment."""
    return teller.generate(request)

def stream_generate(teller: StoryTeller, request: StoryRequest) -> AsyncIterator[Tuple[str, StoryResult]]:
    """Stream story segment updates."""
    return teller.stream(request)

def list_models(teller: StoryTeller) -> List[str]:
    """List the models available on the configured endpoint."""
    return teller.list_models()

def log_result(db: Session, request: StoryRequest, result: StoryResult) -> StoryResponseLog:
    """Persist a final story segment."""
    entry = StoryResponseLog(
        session_id=request.session_id,
        user_message=request.message,
        segment=result.segment.model_dump_json(),
        reasoning=result.reasoning,
        block_count=len(result.segment.content),
    )
    db.add(entry)
    db.commit()
    return entry
