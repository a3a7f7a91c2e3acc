"""SQLAlchemy ORM models for profiles, the credit ledger, and submissions"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileRow(Base):
    """Member profile: membership tier and site role"""

    __tablename__ = "profiles"

    id = Column(Text, primary_key=True)
    email = Column(Text, nullable=True)
    patreon_id = Column(Text, nullable=True)
    patreon_tier = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserCredits(Base):
    """
    Credit ledger, one row per user.

    credits:      {"deck": 2, "roast": 1}
    last_granted: {"deck": "2025-03-01", "roast": "2025-03-01"}
    version:      compare-and-swap token, bumped on every write
    """

    __tablename__ = "user_credits"

    user_id = Column(Text, primary_key=True)
    credits = Column(JSON, nullable=False, default=dict)
    last_granted = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DeckSubmission(Base):
    """Deck build or roast request"""

    __tablename__ = "deck_submissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    submission_type = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="pending", index=True)
    submission_month = Column(String(10), nullable=True)
    patreon_tier = Column(Text, nullable=True)
    patreon_username = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    discord_username = Column(Text, nullable=True)
    commander = Column(Text, nullable=True)
    color_preference = Column(Text, nullable=True)
    theme = Column(Text, nullable=True)
    bracket = Column(Text, nullable=True)
    budget = Column(Text, nullable=True)
    coffee_preference = Column(Text, nullable=True)
    ideal_date = Column(Text, nullable=True)
    mystery_deck = Column(Boolean, nullable=False, default=False)
    deck_list_url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class CreditGrantHistory(Base):
    """Audit trail of manual credit grants"""

    __tablename__ = "credit_grant_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    credit_type = Column(Text, nullable=False)
    amount = Column(Integer, nullable=False)
    granted_by = Column(Text, nullable=True)
    tier = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class CreditDistributionLog(Base):
    """One monthly distribution run"""

    __tablename__ = "credit_distribution_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    triggered_by = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="running")
    users_processed = Column(Integer, nullable=False, default=0)
    credits_granted = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
