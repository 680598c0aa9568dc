from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timeclock.db import Base


class PunchKind(str, enum.Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class Barber(Base):
    __tablename__ = "barbers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="barber")


class TimeEntry(Base):
    """Append-only punch log written by the time clock card; read-only here."""

    __tablename__ = "time_entries"
    __table_args__ = (Index("ix_time_entries_barber_timestamp", "barber_id", "timestamp"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    barber_id: Mapped[str] = mapped_column(
        ForeignKey("barbers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_type: Mapped[PunchKind] = mapped_column(
        Enum(PunchKind, name="time_entry_type", values_callable=lambda kinds: [kind.value for kind in kinds]),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    barber: Mapped[Barber] = relationship(back_populates="time_entries")
