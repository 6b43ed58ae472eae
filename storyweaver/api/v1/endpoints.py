from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
import json
from storyweaver.models.db import init_db, SessionLocal
from storyweaver.schemas.api import ModelsResponse, StoryRequest, StoryResponse
from storyweaver.services import svc
from storyweaver.services.story.manager import StoryTeller
import logging

init_db()
def get_db() -> Session:
    """Get a database session generator for FastAPI dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
logger = logging.getLogger("services")
router = APIRouter()

_teller: StoryTeller | None = None

def get_teller() -> StoryTeller:
    """FastAPI dependency to provide the singleton story teller, built on first use."""
    global _teller
    if _teller is None:
        _teller = StoryTeller(logger)
    return _teller


@router.get("/models", response_model=ModelsResponse)
def models(teller: StoryTeller = Depends(get_teller)):
    return ModelsResponse(models=svc.list_models(teller))


@router.post("/story", response_model=StoryResponse)
def story(req: StoryRequest, db: Session = Depends(get_db), teller: StoryTeller = Depends(get_teller)):
    result = svc.generate(teller, req)
    svc.log_result(db, req, result)
    return StoryResponse(segment=result.segment, reasoning=result.reasoning)


@router.post("/story/stream")
async def story_stream(req: StoryRequest, teller: StoryTeller = Depends(get_teller)):
    async def event_generator():
        final = None
        async for event, result in svc.stream_generate(teller, req):
            if event == "final":
                final = result
            payload = {
                "type": event,
                "segment": result.segment.model_dump(mode="json"),
                "reasoning": result.reasoning,
            }
            yield f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"

        if final is not None:
            # Request-scoped sessions close before the body streams.
            with SessionLocal() as db:
                svc.log_result(db, req, final)
        else:
            logger.warning("Story stream for session %s ended without a final segment", req.session_id)
        # Send a final empty message to signal completion
        yield "data: {}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            'Cache-Control': 'no-cache',
            'Connection': 'keep-alive',
            'X-Accel-Buffering': 'no'  # Disable buffering for nginx
        }
    )
