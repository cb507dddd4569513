from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import SchedulingError
from ..infrastructure.repositories import (
    SqlAlchemyClaimRepository,
    SqlAlchemyResourceRepository,
    SqlAlchemyRuleRepository,
)
from ..schemas import AvailabilityQuery, AvailabilityRead
from ..usecases import availability as availability_usecase
from .errors import to_http_exception

router = APIRouter(prefix="/availability", tags=["availability"])


@router.post("/check", response_model=AvailabilityRead)
async def check_availability(
    payload: AvailabilityQuery,
    session: AsyncSession = Depends(get_session),
) -> AvailabilityRead:
    resource_repo = SqlAlchemyResourceRepository(session)
    claim_repo = SqlAlchemyClaimRepository(session)
    rule_repo = SqlAlchemyRuleRepository(session)
    try:
        blocked = await availability_usecase.check_availability(
            resource_repo,
            claim_repo,
            rule_repo,
            request=payload.to_request(),
            date_key=payload.date_key,
            step=payload.slot_step_minutes,
            open_start_min=payload.open_start_min,
            open_end_min=payload.open_end_min,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    return AvailabilityRead(date_key=payload.date_key, blocked_start_mins=blocked)
