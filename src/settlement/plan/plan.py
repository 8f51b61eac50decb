"""SubscriptionPlan aggregate: the plan catalog.

The catalog is seeded and managed outside this service. Whether a plan is
for Owners (equipment capacity) or Providers (client capacity) is encoded
only in its id range; ``partition_plans`` is the single place that knows
the convention. An explicit category field on the plan would remove it.
"""

from dataclasses import dataclass
from enum import Enum

from protean.fields import Integer, String, ValueObject

from settlement.domain import settlement
from settlement.money import Money

OWNER_PLAN_MAX_ID = 3
PROVIDER_PLAN_MIN_ID = 4

DEFAULT_MAX_EQUIPMENT = 10
DEFAULT_MAX_CLIENTS = 50


class BillingCycle(Enum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class UserType(Enum):
    OWNER = "Owner"
    PROVIDER = "Provider"

    @classmethod
    def parse(cls, value: str | None) -> "UserType":
        """``"provider"`` in any case is a Provider; anything else an Owner."""
        if value and value.strip().lower() == "provider":
            return cls.PROVIDER
        return cls.OWNER


@dataclass(frozen=True)
class PlanLimits:
    max_equipment: int
    max_clients: int


@settlement.aggregate
class SubscriptionPlan:
    id = Integer(identifier=True)
    plan_name = String(max_length=100, required=True)
    price = ValueObject(Money)
    billing_cycle = String(
        max_length=20,
        choices=BillingCycle,
        default=BillingCycle.MONTHLY.value,
    )
    max_equipment = Integer()
    max_clients = Integer()

    @property
    def limits(self) -> PlanLimits:
        return PlanLimits(
            max_equipment=self.max_equipment or DEFAULT_MAX_EQUIPMENT,
            max_clients=self.max_clients or DEFAULT_MAX_CLIENTS,
        )

    @property
    def user_type(self) -> UserType:
        return UserType.PROVIDER if self.id >= PROVIDER_PLAN_MIN_ID else UserType.OWNER


def partition_plans(plans, user_type: str | None) -> list:
    """Plans offered to ``user_type``, ordered by id."""
    if UserType.parse(user_type) == UserType.PROVIDER:
        selected = [plan for plan in plans if plan.id >= PROVIDER_PLAN_MIN_ID]
    else:
        selected = [plan for plan in plans if plan.id <= OWNER_PLAN_MAX_ID]
    return sorted(selected, key=lambda plan: plan.id)
