"""
Entitlement Repository

Data access layer for the users table and its subscription sub-state.
Follows Repository pattern for Clean Architecture.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update

from swift_assistant.domain.interfaces import EntitlementStore
from swift_assistant.domain.subscription import Entitlement, SubscriptionStatus
from swift_assistant.infrastructure.db.models.user import UserModel
from swift_assistant.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    dialect_insert,
)


logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "stripe_subscription_id",
    "subscription_start_date",
    "subscription_end_date",
}


class EntitlementRepository(BaseRepository, EntitlementStore):
    """
    Repository for per-user entitlement state.

    Every call opens its own short unit of work; nothing is cached
    between calls so each decision sees the current row.
    """

    table_name = UserModel.__tablename__

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        """
        Get a user's entitlement.

        Args:
            user_id: Identity provider user id

        Returns:
            Entitlement or None when the user has never been seen
        """
        async with self._unit_of_work("get_entitlement") as session:
            result = await session.execute(
                select(UserModel).where(UserModel.id == user_id)
            )
            model = result.scalar_one_or_none()

            if model:
                return self._to_domain(model)

            return None

    async def get_email(self, user_id: str) -> Optional[str]:
        async with self._unit_of_work("get_email") as session:
            result = await session.execute(
                select(UserModel.email).where(UserModel.id == user_id)
            )
            return result.scalar_one_or_none()

    async def user_exists(self, user_id: str) -> bool:
        async with self._unit_of_work("user_exists") as session:
            result = await session.execute(
                select(UserModel.id).where(UserModel.id == user_id)
            )
            return result.scalar_one_or_none() is not None

    async def find_user_id_by_customer(self, customer_id: str) -> Optional[str]:
        async with self._unit_of_work("find_user_id_by_customer") as session:
            result = await session.execute(
                select(UserModel.id).where(UserModel.stripe_customer_id == customer_id)
            )
            return result.scalars().first()

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def upsert_user_stub(self, user_id: str, email: Optional[str] = None) -> bool:
        """
        Create the user row if it does not exist yet.

        Never touches an existing row (ON CONFLICT DO NOTHING).

        Returns:
            True when a new row was inserted
        """
        async with self._unit_of_work("upsert_user_stub") as session:
            stmt = (
                dialect_insert(session, UserModel)
                .values(
                    id=user_id,
                    email=email,
                    subscription_status=SubscriptionStatus.INACTIVE.value,
                    disable_usage_limit=False,
                    created_at=datetime.now(timezone.utc),
                )
                .on_conflict_do_nothing(index_elements=["id"])
            )
            result = await session.execute(stmt)
            created = (result.rowcount or 0) > 0

        if created:
            logger.info(f"Created user stub {user_id}")
        return created

    async def link_customer_by_user_id(self, user_id: str, customer_id: str) -> None:
        """
        Attach a Stripe customer to a user (last write wins).

        Creates the user stub first so a checkout completed before any
        interaction still links.
        """
        await self.upsert_user_stub(user_id)

        async with self._unit_of_work("link_customer_by_user_id") as session:
            result = await session.execute(
                select(UserModel.stripe_customer_id).where(UserModel.id == user_id)
            )
            previous = result.scalar_one_or_none()
            if previous and previous != customer_id:
                logger.warning(
                    f"Replacing Stripe customer {previous} with {customer_id} for user {user_id}"
                )

            await session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(stripe_customer_id=customer_id)
            )

        logger.info(f"Linked Stripe customer {customer_id} to user {user_id}")

    async def link_customer_by_email(self, email: str, customer_id: str) -> None:
        """Fallback link when the webhook payload carries no user id."""
        async with self._unit_of_work("link_customer_by_email") as session:
            result = await session.execute(
                update(UserModel)
                .where(UserModel.email == email)
                .values(stripe_customer_id=customer_id)
            )

        if not result.rowcount:
            logger.warning(f"No user with email {email} to link Stripe customer {customer_id}")
        else:
            logger.info(f"Linked Stripe customer {customer_id} to user with email {email}")

    async def set_subscription_active(
        self,
        customer_id: str,
        subscription_id: str,
        start: datetime,
        end: datetime,
    ) -> Optional[str]:
        """Mark the customer's user active with the given period."""
        return await self.set_subscription_status(
            customer_id,
            SubscriptionStatus.ACTIVE,
            stripe_subscription_id=subscription_id,
            subscription_start_date=start,
            subscription_end_date=end,
        )

    async def set_subscription_status(
        self,
        customer_id: str,
        status: SubscriptionStatus,
        **fields: Any,
    ) -> Optional[str]:
        """
        Transition the customer's user to ``status``.

        Args:
            customer_id: Stripe customer id
            status: Target status
            **fields: Optional subscription id / period dates to write alongside

        Returns:
            The affected user id, or None when no user is linked to the customer
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        values = {"subscription_status": status.value}
        values.update({key: value for key, value in fields.items() if value is not None})

        async with self._unit_of_work("set_subscription_status") as session:
            result = await session.execute(
                select(UserModel.id).where(UserModel.stripe_customer_id == customer_id)
            )
            user_id = result.scalars().first()

            if user_id is None:
                logger.warning(f"No user linked to Stripe customer {customer_id}")
                return None

            await session.execute(
                update(UserModel)
                .where(UserModel.stripe_customer_id == customer_id)
                .values(**values)
            )

        logger.info(f"Set subscription {status.value} for customer {customer_id}")
        return user_id

    async def set_usage_override(self, user_id: str, disabled: bool) -> bool:
        """Admin toggle for the usage-limit bypass. Returns False for unknown users."""
        async with self._unit_of_work("set_usage_override") as session:
            result = await session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(disable_usage_limit=disabled)
            )
            return bool(result.rowcount)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: UserModel) -> Entitlement:
        """Convert database model to domain entity."""
        try:
            status = SubscriptionStatus(model.subscription_status)
        except ValueError:
            status = SubscriptionStatus.INACTIVE

        return Entitlement(
            user_id=model.id,
            status=status,
            disable_usage_limit=bool(model.disable_usage_limit),
            customer_id=model.stripe_customer_id,
            subscription_id=model.stripe_subscription_id,
            start_date=model.subscription_start_date,
            end_date=model.subscription_end_date,
        )


# Singleton instance
_entitlement_repository: Optional[EntitlementRepository] = None


def get_entitlement_repository() -> EntitlementRepository:
    """Get or create entitlement repository singleton."""
    global _entitlement_repository
    if _entitlement_repository is None:
        _entitlement_repository = EntitlementRepository()
    return _entitlement_repository
