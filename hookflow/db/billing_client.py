"""Read-only access to the billing tables owned by the billing service."""

from typing import Optional

from sqlalchemy import and_, func, or_, select

from hookflow.db.base_client import BaseDBClient
from hookflow.db.models import (
    SubscriptionModel,
    UserStatsModel,
    organization_members_association,
)
from hookflow.enums import (
    SubscriptionPlan,
    SubscriptionReferenceType,
    SubscriptionStatus,
)

PLAN_PRIORITY = {
    SubscriptionPlan.ENTERPRISE.value: 4,
    SubscriptionPlan.TEAM.value: 3,
    SubscriptionPlan.PRO.value: 2,
    SubscriptionPlan.FREE.value: 1,
}


class BillingClient(BaseDBClient):
    """Client for subscription and usage lookups."""

    async def get_highest_priority_subscription(
        self, user_id: int
    ) -> Optional[SubscriptionModel]:
        """Get the best active subscription covering a user.

        Considers subscriptions held by the user directly and by any
        organization the user belongs to; enterprise beats team beats pro
        beats free.

        Args:
            user_id: The user to look up

        Returns:
            The highest priority active SubscriptionModel, or None when the
            user has no active subscription at all
        """
        async with self.async_session() as session:
            organization_ids = select(
                organization_members_association.c.organization_id
            ).where(organization_members_association.c.user_id == user_id)

            result = await session.execute(
                select(SubscriptionModel).where(
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
                    or_(
                        and_(
                            SubscriptionModel.reference_type
                            == SubscriptionReferenceType.USER.value,
                            SubscriptionModel.reference_id == user_id,
                        ),
                        and_(
                            SubscriptionModel.reference_type
                            == SubscriptionReferenceType.ORGANIZATION.value,
                            SubscriptionModel.reference_id.in_(organization_ids),
                        ),
                    ),
                )
            )
            subscriptions = list(result.scalars().all())

        if not subscriptions:
            return None
        return max(subscriptions, key=lambda s: PLAN_PRIORITY.get(s.plan, 0))

    async def get_user_stats(self, user_id: int) -> Optional[UserStatsModel]:
        async with self.async_session() as session:
            result = await session.execute(
                select(UserStatsModel).where(UserStatsModel.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_organization_period_cost(self, organization_id: int) -> float:
        """Sum the current period cost of every member of an organization."""
        async with self.async_session() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(UserStatsModel.current_period_cost), 0.0))
                .select_from(UserStatsModel)
                .join(
                    organization_members_association,
                    organization_members_association.c.user_id
                    == UserStatsModel.user_id,
                )
                .where(
                    organization_members_association.c.organization_id
                    == organization_id
                )
            )
            return float(result.scalar_one())
