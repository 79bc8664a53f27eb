"""Maps billing identifiers carried by provider events to internal users."""

from typing import NoReturn, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.core.logging import logger
from tierwave.domains.billing.exceptions import IdentityResolutionError
from tierwave.domains.billing.protocols import UserResolverProtocol
from tierwave.domains.billing.repository import SubscriptionRepositoryProtocol
from tierwave.domains.billing.types import BillingIdentity


def _parse_user_id(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


class UserResolver(UserResolverProtocol):
    """Resolve a BillingIdentity to exactly one user id.

    Lookup order:
    1. A user already linked to the billing customer id.
    2. The user id in the event metadata, then the checkout
       ``client_reference_id``. When found, the customer id is linked to
       that user, unless the user is already linked to a different one.

    Identifiers that point at two different users are an error; nothing is
    guessed.
    """

    def __init__(self, subscription_repo: SubscriptionRepositoryProtocol) -> None:
        """Initialize with the subscription repository."""
        self._repo = subscription_repo

    async def resolve(self, db: AsyncSession, identity: BillingIdentity) -> UUID:
        """Return the user the identifiers belong to."""
        hinted_id = _parse_user_id(identity.metadata_user_id) or _parse_user_id(
            identity.client_reference_id
        )

        if identity.customer_id:
            linked = await self._repo.get_by_customer_id(db, identity.customer_id)
            if linked is not None:
                if hinted_id is not None and hinted_id != linked.user_id:
                    self._fail(
                        identity,
                        f"Customer {identity.customer_id} belongs to user {linked.user_id}, "
                        f"event names user {hinted_id}",
                    )
                return linked.user_id

        if hinted_id is None:
            self._fail(identity, "Event carries no usable user reference")

        record = await self._repo.get_record(db, hinted_id)
        if record is None:
            self._fail(identity, f"User {hinted_id} does not exist")

        if identity.customer_id and record.customer_id != identity.customer_id:
            if record.customer_id is not None:
                self._fail(
                    identity,
                    f"User {hinted_id} is linked to customer {record.customer_id}, "
                    f"event names customer {identity.customer_id}",
                )
            if not await self._repo.link_customer_id(db, hinted_id, identity.customer_id):
                self._fail(identity, f"Could not link customer {identity.customer_id}")
            logger.info(f"Linked billing customer {identity.customer_id} to user {hinted_id}")

        return hinted_id

    @staticmethod
    def _fail(identity: BillingIdentity, message: str) -> NoReturn:
        logger.with_context(
            customer_id=identity.customer_id,
            metadata_user_id=identity.metadata_user_id,
        ).error(f"billing.identity_unresolved: {message}")
        raise IdentityResolutionError(
            identity.customer_id, identity.metadata_user_id, message=message
        )
