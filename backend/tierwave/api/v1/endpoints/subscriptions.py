"""API endpoints for the caller's subscription and free-tier usage."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.api import deps
from tierwave.api.deps import Inject
from tierwave.domains.billing.protocols import SubscriptionServiceProtocol
from tierwave.domains.billing.types import TransitionResult
from tierwave.domains.usage.protocols import UsageCountersProtocol
from tierwave.domains.usage.types import evaluate_image_limit
from tierwave.schemas.subscription import (
    ImageLimitResponse,
    SubscriptionActionResponse,
    SubscriptionStatusView,
    VideoUploadResponse,
)

router = APIRouter()


def _action_response(
    subscriptions: SubscriptionServiceProtocol, result: TransitionResult, message: str
) -> SubscriptionActionResponse:
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.message)
    return SubscriptionActionResponse(
        message=message, subscription=subscriptions.describe(result.record)
    )


@router.get("/status", response_model=SubscriptionStatusView)
async def get_status(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> SubscriptionStatusView:
    """Current plan, today's usage and the offer parameters."""
    return await subscriptions.get_status(db, user_id)


@router.post("/start-trial", response_model=SubscriptionActionResponse)
async def start_trial(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> SubscriptionActionResponse:
    """Start the one-time free trial."""
    result = await subscriptions.start_trial(db, user_id)
    return _action_response(subscriptions, result, "Trial started")


@router.post("/cancel", response_model=SubscriptionActionResponse)
async def cancel(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> SubscriptionActionResponse:
    """Cancel at the end of the current period; access continues until then."""
    result = await subscriptions.cancel(db, user_id)
    return _action_response(
        subscriptions, result, "Subscription will end at the close of the current period"
    )


@router.post("/reactivate", response_model=SubscriptionActionResponse)
async def reactivate(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> SubscriptionActionResponse:
    """Withdraw a pending cancellation."""
    result = await subscriptions.reactivate(db, user_id)
    return _action_response(subscriptions, result, "Subscription reactivated")


# ---------------------------------------------------------------------------
# Usage gates
# ---------------------------------------------------------------------------


@router.get("/check-image-limit", response_model=ImageLimitResponse)
async def check_image_limit(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
    usage: UsageCountersProtocol = Inject(UsageCountersProtocol),
) -> ImageLimitResponse:
    """Whether the caller may send another image for analysis today."""
    premium = subscriptions.has_premium(await subscriptions.get_record(db, user_id))
    check = await usage.check_image_limit(db, user_id, premium)
    return ImageLimitResponse(
        allowed=check.allowed,
        used=check.used,
        limit=check.limit,
        remaining=check.remaining,
        reason=check.reason,
    )


@router.get("/can-upload-video", response_model=VideoUploadResponse)
async def can_upload_video(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
    usage: UsageCountersProtocol = Inject(UsageCountersProtocol),
) -> VideoUploadResponse:
    """Video upload is reserved for premium users."""
    premium = subscriptions.has_premium(await subscriptions.get_record(db, user_id))
    if usage.can_upload_video(premium):
        return VideoUploadResponse(can_upload=True)
    return VideoUploadResponse(
        can_upload=False, reason="Video upload requires a trial or subscription"
    )


@router.post("/usage/images", response_model=ImageLimitResponse)
async def record_image(
    db: AsyncSession = Depends(deps.get_db),
    user_id: UUID = Depends(deps.get_current_user_id),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
    usage: UsageCountersProtocol = Inject(UsageCountersProtocol),
) -> ImageLimitResponse:
    """Count one image analysis against today's quota.

    Responds 429 once a free user's quota is spent.
    """
    premium = subscriptions.has_premium(await subscriptions.get_record(db, user_id))
    used = await usage.record_image(db, user_id, premium)
    check = evaluate_image_limit(used, usage.daily_image_limit, premium)
    return ImageLimitResponse(
        allowed=check.allowed,
        used=check.used,
        limit=check.limit,
        remaining=check.remaining,
        reason=check.reason,
    )
