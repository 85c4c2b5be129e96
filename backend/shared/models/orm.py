"""
SQLAlchemy 2.0 ORM models for the tracker.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CharacterORM(Base):
    __tablename__ = "characters"
    __table_args__ = (
        UniqueConstraint("name", "realm", name="uq_character_name_realm"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    realm: Mapped[str] = mapped_column(String(64), nullable=False)
    class_name: Mapped[str] = mapped_column("class", String(32), nullable=False, default="")
    overall_score: Mapped[float] = mapped_column("score", Float, nullable=False, default=0.0)
    tank_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    heal_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    dps_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    date_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
