from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    sport_id = Column(String, nullable=False)  # "badminton" | "cricket"
    status = Column(String, nullable=False, default="setup")
    winner = Column(String, nullable=True)  # "A" | "B"
    teams = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    config = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    # Engine state including the full event log; the source of truth.
    state = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_match_sport_status", "sport_id", "status"),)


class ScoreEvent(Base):
    """One row per accepted event, mirrored from the match's event log."""

    __tablename__ = "score_event"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    seq = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("match_id", "seq", name="uq_score_event_match_id_seq"),
    )
