"""API endpoint for billing provider webhooks.

The route reads the raw request body and declares no body model, so the
bytes handed to signature verification are exactly the bytes the provider
signed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.api import deps
from tierwave.api.deps import Inject
from tierwave.core.logging import logger
from tierwave.domains.billing.exceptions import IdentityResolutionError
from tierwave.domains.billing.protocols import BillingWebhookProtocol

router = APIRouter()


@router.post("/webhook/{registration_id}", include_in_schema=False)
async def stripe_webhook(
    registration_id: str,
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    webhook: BillingWebhookProtocol = Inject(BillingWebhookProtocol),
) -> Response:
    """Handle a billing provider webhook delivery.

    Returns:
        200 with the outcome once the event is processed, a duplicate or
        ignored; 400 on a missing or invalid signature or an untranslatable
        event; 422 when the event cannot be tied to a user; 500 on any other
        error so the provider retries.
    """
    try:
        payload = await request.body()
    except Exception:
        return Response(status_code=400)

    if not stripe_signature:
        return Response(status_code=400)

    try:
        outcome = await webhook.process_webhook(db, payload, stripe_signature, registration_id)
        return JSONResponse(status_code=200, content={"received": True, "outcome": outcome.value})
    except ValueError as e:
        logger.warning(f"Rejected webhook on registration '{registration_id}': {e}")
        return Response(status_code=400)
    except IdentityResolutionError:
        return Response(status_code=422)
    except Exception as e:
        logger.error(f"Webhook processing failed on '{registration_id}': {e}", exc_info=True)
        return Response(status_code=500)
