from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Date, DateTime, Integer, String, Text


class Base(DeclarativeBase):
    pass


class Activity(StrEnum):
    AXE = "AXE"
    DUCKPIN = "DUCKPIN"
    COMBO = "COMBO"


class RuleScope(StrEnum):
    AXE = "AXE"
    DUCKPIN = "DUCKPIN"
    COMBO = "COMBO"
    ALL = "ALL"


class ResourceType(StrEnum):
    AXE = "AXE"
    DUCKPIN = "DUCKPIN"
    PARTY = "PARTY"


class ComboOrder(StrEnum):
    DUCKPIN_FIRST = "DUCKPIN_FIRST"
    AXE_FIRST = "AXE_FIRST"


class PartyAreaTiming(StrEnum):
    BEFORE = "BEFORE"
    DURING = "DURING"
    AFTER = "AFTER"


class BookingStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO-SHOW"
    COMPLETED = "COMPLETED"


class PaymentMethod(StrEnum):
    ONLINE = "ONLINE"
    CASH = "CASH"
    AT_DOOR = "AT_DOOR"
    IMPORT = "IMPORT"


def _enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda members: [e.value for e in members],
        native_enum=False,
    )


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        UniqueConstraint("name", name="uq_resources_name"),
        Index("idx_resources_type", "type", "active"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[ResourceType] = mapped_column(_enum(ResourceType), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pair_group: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    claims: Mapped[list["ResourceClaim"]] = relationship(back_populates="resource")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="chk_bookings_party_size"),
        CheckConstraint("starts_at < ends_at", name="chk_bookings_time"),
        Index("idx_bookings_window", "starts_at", "ends_at"),
        Index("idx_bookings_date", "date_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    activity: Mapped[Activity] = mapped_column(_enum(Activity), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    date_key: Mapped[date] = mapped_column(Date, nullable=False)
    start_min: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    combo_order: Mapped[Optional[ComboOrder]] = mapped_column(_enum(ComboOrder), nullable=True)
    combo_axe_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    combo_duckpin_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    party_area_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    party_area_timing: Mapped[Optional[PartyAreaTiming]] = mapped_column(_enum(PartyAreaTiming), nullable=True)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus),
        nullable=False,
        default=BookingStatus.CONFIRMED,
    )
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        _enum(PaymentMethod),
        nullable=False,
        default=PaymentMethod.AT_DOOR,
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    claims: Mapped[list["ResourceClaim"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
    )


class ResourceClaim(Base):
    __tablename__ = "resource_claims"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="chk_claims_time"),
        Index("idx_claims_resource_window", "resource_id", "starts_at", "ends_at"),
        Index("idx_claims_booking", "booking_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    resource_id: Mapped[int] = mapped_column(ForeignKey("resources.id"), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="claims")
    resource: Mapped["Resource"] = relationship(back_populates="claims")


class BlackoutRule(Base):
    __tablename__ = "blackout_rules"
    __table_args__ = (
        CheckConstraint("start_min < end_min", name="chk_blackouts_window"),
        Index("idx_blackouts_date", "date_key", "activity"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    date_key: Mapped[date] = mapped_column(Date, nullable=False)
    start_min: Mapped[int] = mapped_column(Integer, nullable=False)
    end_min: Mapped[int] = mapped_column(Integer, nullable=False)
    activity: Mapped[RuleScope] = mapped_column(_enum(RuleScope), nullable=False, default=RuleScope.ALL)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class BufferRule(Base):
    __tablename__ = "buffer_rules"
    __table_args__ = (
        CheckConstraint("before_min >= 0 AND after_min >= 0", name="chk_buffers_non_negative"),
        Index("idx_buffers_activity", "activity", "active"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    activity: Mapped[RuleScope] = mapped_column(_enum(RuleScope), nullable=False, default=RuleScope.ALL)
    before_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    after_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
