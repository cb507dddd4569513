import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import (
    get_current_staff_id,
    get_notification_sender,
    get_optional_staff_id,
    get_payment_gateway,
    get_session,
    get_waiver_issuer,
)
from ..domain.collaborators import NotificationSender, PaymentGateway, WaiverIssuer
from ..domain.errors import SchedulingError
from ..infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyClaimRepository,
    SqlAlchemyResourceRepository,
    SqlAlchemyRuleRepository,
)
from ..models import BookingStatus, PaymentMethod
from ..schemas import (
    BookingCreate,
    BookingRead,
    BookingUpdate,
    BulkBookingCreate,
    BulkBookingRead,
    BulkBookingResult,
    ClaimReassign,
    PaymentIn,
    RepairRead,
)
from ..usecases import bookings as booking_usecase
from ..usecases.notifications import send_booking_followups
from ..utils.audit_log import emit_audit_log
from .errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

_PAID_METHODS = {PaymentMethod.ONLINE, PaymentMethod.CASH}
_IF_MATCH = re.compile(r'^(?:W/)?"?(\d+)"?$')


def _repos(session: AsyncSession) -> booking_usecase.BookingRepos:
    return booking_usecase.BookingRepos(
        resources=SqlAlchemyResourceRepository(session),
        claims=SqlAlchemyClaimRepository(session),
        bookings=SqlAlchemyBookingRepository(session),
        rules=SqlAlchemyRuleRepository(session),
    )


def _customer(payload: BookingCreate) -> booking_usecase.CustomerDetails:
    return booking_usecase.CustomerDetails(
        name=payload.customer_name,
        email=payload.customer_email,
        phone=payload.customer_phone,
        notes=payload.notes,
    )


def _payment(payment: PaymentIn, total_cents_override: Optional[int]) -> booking_usecase.PaymentDetails:
    return booking_usecase.PaymentDetails(
        method=payment.method,
        paid=payment.method in _PAID_METHODS,
        reference=payment.charge_id,
        total_cents_override=total_cents_override,
    )


def _extract_version(if_match: Optional[str], payload: Optional[object]) -> Optional[int]:
    """If-Match wins over a body ``version``; neither means no version check."""
    if if_match is not None:
        match = _IF_MATCH.match(if_match.strip())
        if match is None or int(match.group(1)) < 1:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid If-Match header")
        return int(match.group(1))
    version = getattr(payload, "version", None)
    if version is None:
        return None
    if version < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid version")
    return version


def _audit_failed(exc: RuntimeError) -> HTTPException:
    logger.error("audit log failed: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    session: AsyncSession = Depends(get_session),
    staff_id: Optional[str] = Depends(get_optional_staff_id),
    payments: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationSender = Depends(get_notification_sender),
    waivers: WaiverIssuer = Depends(get_waiver_issuer),
) -> BookingRead:
    if payload.total_cents_override is not None and staff_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="price override requires staff")

    repos = _repos(session)
    try:
        async with session.begin():
            booking, claims = await booking_usecase.create_booking(
                repos,
                request=payload.to_request(),
                date_key=payload.date_key,
                start_min=payload.start_min,
                customer=_customer(payload),
                payment=_payment(payload.payment, payload.total_cents_override),
            )
            emit_audit_log(
                action="booking.created",
                initiator="staff" if staff_id else "customer",
                booking_id=booking.id,
                activity=booking.activity,
                party_size=booking.party_size,
                status_to=booking.status,
                version=booking.version,
                staff_id=staff_id,
                claim_count=len(claims),
            )
    except (SchedulingError, RuntimeError) as exc:
        if payload.payment.method == PaymentMethod.ONLINE:
            await booking_usecase.refund_failed_charge(
                payments,
                charge_id=payload.payment.charge_id,
                amount_cents=payload.payment.amount_cents,
                reason=f"booking failed: {exc}",
            )
        if isinstance(exc, SchedulingError):
            raise to_http_exception(exc) from exc
        raise _audit_failed(exc) from exc

    waiver_url = await send_booking_followups(notifier, waivers, booking)
    return BookingRead.from_db(booking=booking, claims=claims, waiver_url=waiver_url)


@router.post("/bulk", response_model=BulkBookingRead)
async def create_bookings_bulk(
    payload: BulkBookingCreate,
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> BulkBookingRead:
    repos = _repos(session)
    results: list[BulkBookingResult] = []
    async with session.begin():
        for index, item in enumerate(payload.bookings):
            try:
                async with session.begin_nested():
                    booking, claims = await booking_usecase.create_booking(
                        repos,
                        request=item.to_request(),
                        date_key=item.date_key,
                        start_min=item.start_min,
                        customer=_customer(item),
                        payment=_payment(item.payment, item.total_cents_override),
                    )
            except SchedulingError as exc:
                http_exc = to_http_exception(exc)
                logger.info("bulk item %d rejected: %s", index, exc)
                results.append(
                    BulkBookingResult(index=index, status_code=http_exc.status_code, error=str(http_exc.detail))
                )
                continue

            try:
                emit_audit_log(
                    action="booking.created",
                    initiator="staff",
                    booking_id=booking.id,
                    activity=booking.activity,
                    party_size=booking.party_size,
                    status_to=booking.status,
                    version=booking.version,
                    staff_id=staff_id,
                    claim_count=len(claims),
                    extra={"bulk_index": index},
                )
            except RuntimeError as exc:
                raise _audit_failed(exc) from exc
            results.append(BulkBookingResult(index=index, booking_id=booking.id, status_code=status.HTTP_201_CREATED))

    created = sum(1 for r in results if r.booking_id is not None)
    return BulkBookingRead(created=created, failed=len(results) - created, results=results)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> BookingRead:
    try:
        booking, claims = await booking_usecase.get_booking(_repos(session), booking_id=booking_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    return BookingRead.from_db(booking=booking, claims=claims)


@router.patch("/{booking_id}", response_model=BookingRead)
async def update_booking(
    payload: BookingUpdate,
    booking_id: int = Path(..., ge=1),
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> BookingRead:
    version = _extract_version(if_match, payload)
    changes = booking_usecase.BookingChanges(**payload.model_dump(exclude={"version"}))
    async with session.begin():
        try:
            booking, claims, previous_status = await booking_usecase.update_booking(
                _repos(session),
                booking_id=booking_id,
                changes=changes,
                version=version,
            )
        except SchedulingError as exc:
            raise to_http_exception(exc) from exc

        if booking.status == BookingStatus.CANCELLED and previous_status != BookingStatus.CANCELLED:
            action = "booking.cancelled"
        elif changes.touches_schedule:
            action = "booking.rescheduled"
        else:
            action = "booking.updated"
        try:
            emit_audit_log(
                action=action,
                initiator="staff",
                booking_id=booking.id,
                activity=booking.activity,
                party_size=booking.party_size,
                status_from=previous_status,
                status_to=booking.status,
                version=booking.version,
                staff_id=staff_id,
                claim_count=len(claims),
            )
        except RuntimeError as exc:
            raise _audit_failed(exc) from exc

    return BookingRead.from_db(booking=booking, claims=claims)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int = Path(..., ge=1),
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> Response:
    version = _extract_version(if_match, None)
    async with session.begin():
        try:
            booking = await booking_usecase.delete_booking(_repos(session), booking_id=booking_id, version=version)
        except SchedulingError as exc:
            raise to_http_exception(exc) from exc
        try:
            emit_audit_log(
                action="booking.deleted",
                initiator="staff",
                booking_id=booking_id,
                activity=booking.activity,
                party_size=booking.party_size,
                status_from=booking.status,
                staff_id=staff_id,
            )
        except RuntimeError as exc:
            raise _audit_failed(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{booking_id}/repair", response_model=RepairRead)
async def repair_lane_pairing(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> RepairRead:
    async with session.begin():
        try:
            booking, claims, relocated = await booking_usecase.repair_lane_pairing(
                _repos(session),
                booking_id=booking_id,
            )
        except SchedulingError as exc:
            raise to_http_exception(exc) from exc
        if relocated:
            try:
                emit_audit_log(
                    action="booking.repaired",
                    initiator="staff",
                    booking_id=booking.id,
                    activity=booking.activity,
                    version=booking.version,
                    staff_id=staff_id,
                    claim_count=len(claims),
                )
            except RuntimeError as exc:
                raise _audit_failed(exc) from exc

    return RepairRead(relocated=relocated, booking=BookingRead.from_db(booking=booking, claims=claims))


@router.post("/{booking_id}/claims/reassign", response_model=BookingRead)
async def reassign_claims(
    payload: ClaimReassign,
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    staff_id: str = Depends(get_current_staff_id),
) -> BookingRead:
    moves = [(move.claim_id, move.resource_id) for move in payload.moves]
    async with session.begin():
        try:
            booking, claims = await booking_usecase.reassign_claims(
                _repos(session),
                booking_id=booking_id,
                moves=moves,
            )
        except SchedulingError as exc:
            raise to_http_exception(exc) from exc
        try:
            emit_audit_log(
                action="booking.claims_reassigned",
                initiator="staff",
                booking_id=booking.id,
                activity=booking.activity,
                version=booking.version,
                staff_id=staff_id,
                claim_count=len(claims),
                extra={"moves": [{"claim_id": c, "resource_id": r} for c, r in moves]},
            )
        except RuntimeError as exc:
            raise _audit_failed(exc) from exc

    return BookingRead.from_db(booking=booking, claims=claims)
