from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import BigInteger, DateTime, Integer, String


class Base(DeclarativeBase):
    pass


class PassType(StrEnum):
    SEAT = "seat"
    STANDING = "standing"


class ReservationStatus(StrEnum):
    VALIDATED = "validated"


class ScheduleSlot(Base):
    __tablename__ = "schedule_config"
    __table_args__ = (
        CheckConstraint("max_seats >= 0", name="chk_schedule_max_seats"),
        CheckConstraint("max_standing >= 0", name="chk_schedule_max_standing"),
        CheckConstraint("version >= 1", name="chk_schedule_version"),
        Index("idx_schedule_position", "position"),
    )

    slot_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    max_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_standing: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_standing_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("user_id", "slot_id", name="uq_res_user_slot"),
        Index("idx_res_slot", "slot_id"),
        Index("idx_res_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    slot_id: Mapped[str] = mapped_column(ForeignKey("schedule_config.slot_id"), nullable=False)
    pass_type: Mapped[PassType] = mapped_column(
        Enum(
            PassType,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
    )
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(
            ReservationStatus,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=ReservationStatus.VALIDATED,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
