import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=True)
    context = Column(Text, nullable=True)
    interviewer_role = Column(String, nullable=True)
    duration_minutes = Column(Float, nullable=True)
    interaction_mode = Column(String, default="VOICE")  # VOICE, TEXT_ONLY
    speech_provider = Column(String, nullable=True)  # empty = local recognition, AZURE/RELAY = server relay
    max_attempts = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow)


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String, unique=True, nullable=False)
    interview_id = Column(String, nullable=False)
    candidate_id = Column(String, nullable=False)
    candidate_name = Column(String, nullable=True)
    max_attempts = Column(Integer, nullable=True)
    status = Column(String, default="NOT_STARTED")  # NOT_STARTED, IN_PROGRESS, COMPLETED
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)


class AttemptRecord(Base):
    __tablename__ = "interview_transcripts"
    __table_args__ = (UniqueConstraint("interview_id", "candidate_id", "attempt_number", name="uq_transcript_attempt"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    interview_id = Column(String, nullable=False)
    candidate_id = Column(String, nullable=False)
    attempt_number = Column(Integer, nullable=False)
    content = Column(JSON, nullable=False, default=list)  # list of {role, text, timestamp}
    status = Column(String, default="NOT_STARTED")
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    proctor_photo_blob = Column(String, nullable=True)
    proctor_photo_mime = Column(String, nullable=True)
    proctor_photo_captured_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class RubricRecord(Base):
    __tablename__ = "report_rubrics"

    interview_id = Column(String, primary_key=True)
    parameters = Column(JSON, nullable=False, default=list)
    include_overall = Column(Boolean, default=True)
    include_skill_levels = Column(Boolean, default=True)
    cefr_enabled = Column(Boolean, default=False)
    template_summary = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class ReportRecord(Base):
    __tablename__ = "interview_reports"
    __table_args__ = (UniqueConstraint("interview_id", "candidate_id", "attempt_number", name="uq_report_attempt"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    interview_id = Column(String, nullable=False)
    candidate_id = Column(String, nullable=False)
    attempt_number = Column(Integer, nullable=False)
    parameters = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=True)
    overall = Column(Integer, nullable=True)
    scoring_mode = Column(String, nullable=False, default="fallback")  # llm, fallback, mixed
    created_at = Column(DateTime, default=_utcnow)
