from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, model_validator

from .domain.planner import SchedulingRequest, build_scheduling_request
from .models import (
    Activity,
    Booking,
    BookingStatus,
    ComboOrder,
    PartyAreaTiming,
    PaymentMethod,
    ResourceClaim,
)
from .utils.time import VENUE_TZ, format_minutes, utc_naive_to_venue


class SchedulingFields(BaseModel):
    activity: Activity
    party_size: int = Field(ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    combo_order: Optional[ComboOrder] = None
    combo_axe_minutes: Optional[int] = Field(default=None, ge=1)
    combo_duckpin_minutes: Optional[int] = Field(default=None, ge=1)
    party_areas: list[str] = Field(default_factory=list)
    party_area_minutes: Optional[int] = Field(default=None, ge=1)
    party_area_timing: Optional[PartyAreaTiming] = None

    def to_request(self) -> SchedulingRequest:
        return build_scheduling_request(
            activity=self.activity,
            party_size=self.party_size,
            duration_minutes=self.duration_minutes,
            combo_order=self.combo_order,
            combo_axe_minutes=self.combo_axe_minutes,
            combo_duckpin_minutes=self.combo_duckpin_minutes,
            party_areas=self.party_areas,
            party_area_minutes=self.party_area_minutes,
            party_area_timing=self.party_area_timing,
        )


class AvailabilityQuery(SchedulingFields):
    date_key: date
    open_start_min: Optional[int] = Field(default=None, ge=0, le=1440)
    open_end_min: Optional[int] = Field(default=None, ge=0, le=1440)
    slot_step_minutes: int = 30


class AvailabilityRead(BaseModel):
    date_key: date
    blocked_start_mins: list[int]


class PaymentIn(BaseModel):
    method: PaymentMethod = PaymentMethod.AT_DOOR
    charge_id: Optional[str] = None
    amount_cents: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _online_needs_charge(self) -> "PaymentIn":
        if self.method == PaymentMethod.ONLINE and not self.charge_id:
            raise ValueError("online payments require charge_id")
        return self


class BookingCreate(SchedulingFields):
    date_key: date
    start_min: int = Field(ge=0, lt=1440)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str = Field(min_length=3, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    payment: PaymentIn = Field(default_factory=PaymentIn)
    total_cents_override: Optional[int] = Field(default=None, ge=1)


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    activity: Optional[Activity] = None
    party_size: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    combo_order: Optional[ComboOrder] = None
    combo_axe_minutes: Optional[int] = Field(default=None, ge=1)
    combo_duckpin_minutes: Optional[int] = Field(default=None, ge=1)
    date_key: Optional[date] = None
    start_min: Optional[int] = Field(default=None, ge=0, lt=1440)
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    paid: Optional[bool] = None
    total_cents_override: Optional[int] = Field(default=None, ge=1)
    version: Optional[int] = Field(default=None, ge=1)


class ClaimMove(BaseModel):
    claim_id: int = Field(ge=1)
    resource_id: int = Field(ge=1)


class ClaimReassign(BaseModel):
    moves: list[ClaimMove] = Field(min_length=1)


class ClaimRead(BaseModel):
    claim_id: int
    resource_id: int
    starts_at: datetime
    ends_at: datetime

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.astimezone(VENUE_TZ).isoformat()

    @classmethod
    def from_db(cls, *, claim: ResourceClaim) -> "ClaimRead":
        return cls(
            claim_id=claim.id,
            resource_id=claim.resource_id,
            starts_at=utc_naive_to_venue(claim.starts_at),
            ends_at=utc_naive_to_venue(claim.ends_at),
        )


class BookingRead(BaseModel):
    booking_id: int
    activity: Activity
    party_size: int
    date_key: date
    start_min: int
    start_time: str
    duration_minutes: int
    starts_at: datetime
    ends_at: datetime
    combo_order: Optional[ComboOrder] = None
    combo_axe_minutes: Optional[int] = None
    combo_duckpin_minutes: Optional[int] = None
    party_area_minutes: Optional[int] = None
    party_area_timing: Optional[PartyAreaTiming] = None
    total_cents: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus
    paid: bool
    payment_method: PaymentMethod
    version: int
    claims: list[ClaimRead] = Field(default_factory=list)
    waiver_url: Optional[str] = None

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.astimezone(VENUE_TZ).isoformat()

    @classmethod
    def from_db(
        cls,
        *,
        booking: Booking,
        claims: list[ResourceClaim],
        waiver_url: Optional[str] = None,
    ) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            activity=booking.activity,
            party_size=booking.party_size,
            date_key=booking.date_key,
            start_min=booking.start_min,
            start_time=format_minutes(booking.start_min),
            duration_minutes=booking.duration_minutes,
            starts_at=utc_naive_to_venue(booking.starts_at),
            ends_at=utc_naive_to_venue(booking.ends_at),
            combo_order=booking.combo_order,
            combo_axe_minutes=booking.combo_axe_minutes,
            combo_duckpin_minutes=booking.combo_duckpin_minutes,
            party_area_minutes=booking.party_area_minutes,
            party_area_timing=booking.party_area_timing,
            total_cents=booking.total_cents,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            notes=booking.notes,
            status=booking.status,
            paid=booking.paid,
            payment_method=booking.payment_method,
            version=booking.version,
            claims=[ClaimRead.from_db(claim=claim) for claim in claims],
            waiver_url=waiver_url,
        )


class BulkBookingCreate(BaseModel):
    bookings: list[BookingCreate] = Field(min_length=1, max_length=200)


class BulkBookingResult(BaseModel):
    index: int
    booking_id: Optional[int] = None
    status_code: int
    error: Optional[str] = None


class BulkBookingRead(BaseModel):
    created: int
    failed: int
    results: list[BulkBookingResult]


class RepairRead(BaseModel):
    relocated: bool
    booking: BookingRead
