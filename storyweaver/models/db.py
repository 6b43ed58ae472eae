from __future__ import annotations

from sqlalchemy import Column, Integer, String, Text, DateTime, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storyweaver.core.config import settings
from datetime import datetime

connect_args = {}
if settings.database_url.startswith("sqlite"):  # pragma: no cover - used in tests
    connect_args["check_same_thread"] = False

engine = create_engine(settings.database_url, future=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


class StoryResponseLog(Base):
    """Stores each final story segment together with the user turn that produced it."""

    __tablename__ = "story_response_log"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, nullable=False, index=True)
    user_message = Column(Text, nullable=False)
    segment = Column(Text, nullable=False)  # StorySegment as JSON
    reasoning = Column(Text, nullable=True)
    block_count = Column(Integer, nullable=False, default=0)
    date_added = Column(DateTime, default=datetime.utcnow, nullable=False)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
