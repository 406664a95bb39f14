"""Usage (cost) limit checks for workflow executions.

Independent of rate limiting: a user can be well under their request rate
and still have spent their plan's budget for the billing period.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta
from loguru import logger

from hookflow.constants import (
    BILLING_ENABLED,
    ENTERPRISE_TIER_COST_LIMIT,
    FREE_TIER_COST_LIMIT,
    PRO_TIER_COST_LIMIT,
    TEAM_TIER_COST_LIMIT,
)
from hookflow.db import db_client
from hookflow.db.models import SubscriptionModel
from hookflow.enums import SubscriptionPlan, SubscriptionReferenceType

PLAN_COST_LIMITS = {
    SubscriptionPlan.FREE.value: FREE_TIER_COST_LIMIT,
    SubscriptionPlan.PRO.value: PRO_TIER_COST_LIMIT,
    SubscriptionPlan.TEAM.value: TEAM_TIER_COST_LIMIT,
    SubscriptionPlan.ENTERPRISE.value: ENTERPRISE_TIER_COST_LIMIT,
}


@dataclass
class UsageCheckResult:
    """Result of a usage check."""

    is_exceeded: bool
    current_usage: float = 0.0
    limit: float = 0.0
    plan: str = SubscriptionPlan.FREE.value
    message: str = ""
    period_end: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "currentPeriodCost": self.current_usage,
            "limit": self.limit,
            "plan": self.plan,
            "isExceeded": self.is_exceeded,
            "periodEnd": self.period_end.isoformat() if self.period_end else None,
        }


def get_plan_cost_limit(subscription: Optional[SubscriptionModel]) -> float:
    """Cost ceiling for a subscription; team plans scale with seats."""
    if subscription is None:
        return FREE_TIER_COST_LIMIT

    per_seat = PLAN_COST_LIMITS.get(subscription.plan, FREE_TIER_COST_LIMIT)
    if subscription.plan in (SubscriptionPlan.TEAM.value, SubscriptionPlan.ENTERPRISE.value):
        return per_seat * max(subscription.seats or 1, 1)
    return per_seat


def get_billing_period(
    subscription: Optional[SubscriptionModel], now: Optional[datetime] = None
) -> Tuple[datetime, datetime]:
    """Current billing period as (start, end).

    Uses the subscription's own period when it has one; otherwise periods
    are monthly, anchored on the subscription start or the calendar month.
    """
    now = now or datetime.now(UTC)

    if subscription is not None and subscription.period_start and subscription.period_end:
        return subscription.period_start, subscription.period_end

    if subscription is not None and subscription.period_start:
        start = subscription.period_start
        months = (now.year - start.year) * 12 + (now.month - start.month)
        period_start = start + relativedelta(months=months)
        if period_start > now:
            period_start -= relativedelta(months=1)
        return period_start, period_start + relativedelta(months=1)

    period_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return period_start, period_start + relativedelta(months=1)


async def check_server_side_usage_limits(user_id: int) -> UsageCheckResult:
    """Compare the current billing period's cost against the plan's ceiling.

    Organization subscriptions are checked against the cost of every member
    of the organization; personal ones against the user's own cost. A usage
    limit override on the user's stats wins over the plan ceiling.

    Args:
        user_id: The workflow owner

    Returns:
        UsageCheckResult with is_exceeded=True once the cost reaches the limit
    """
    if not BILLING_ENABLED:
        return UsageCheckResult(is_exceeded=False)

    subscription = await db_client.get_highest_priority_subscription(user_id)
    stats = await db_client.get_user_stats(user_id)
    plan = subscription.plan if subscription else SubscriptionPlan.FREE.value

    if (
        subscription is not None
        and subscription.reference_type == SubscriptionReferenceType.ORGANIZATION.value
    ):
        current_usage = await db_client.get_organization_period_cost(
            subscription.reference_id
        )
    else:
        current_usage = stats.current_period_cost if stats else 0.0

    if stats is not None and stats.current_usage_limit is not None:
        limit = stats.current_usage_limit
    else:
        limit = get_plan_cost_limit(subscription)

    _, period_end = get_billing_period(subscription)

    if current_usage >= limit:
        logger.warning(
            f"User {user_id} exceeded usage limit: ${current_usage:.2f} of ${limit:.2f} ({plan})"
        )
        return UsageCheckResult(
            is_exceeded=True,
            current_usage=current_usage,
            limit=limit,
            plan=plan,
            period_end=period_end,
            message=(
                f"Usage limit exceeded: ${current_usage:.2f} used of ${limit:.2f} limit. "
                "Please upgrade your plan to continue."
            ),
        )

    return UsageCheckResult(
        is_exceeded=False,
        current_usage=current_usage,
        limit=limit,
        plan=plan,
        period_end=period_end,
    )
