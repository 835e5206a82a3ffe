"""SQLAlchemy models for profiles and the cards routing to them."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(32), primary_key=True)
    slug = Column(String(64), unique=True, nullable=False, index=True)
    owner_email = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    photo_url = Column(Text, nullable=True)
    phone = Column(String(64), nullable=True)
    contact_email = Column(String(255), nullable=True)
    website = Column(Text, nullable=True)
    socials = Column(JSON, default=dict, nullable=False)
    theme = Column(String(16), default="dark", nullable=False)
    accent_color = Column(String(16), nullable=True)
    branding = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    cards = relationship("Card", back_populates="profile", cascade="all,delete-orphan")


class Card(Base):
    __tablename__ = "cards"

    card_id = Column(String(64), primary_key=True)
    profile_id = Column(String(32), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    tap_count = Column(Integer, default=0, nullable=False)
    last_tap_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile = relationship("Profile", back_populates="cards")
