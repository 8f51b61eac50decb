"""Read-side plan queries."""

from dataclasses import dataclass
from functools import singledispatch

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.errors import NotFoundError
from settlement.plan.plan import PlanLimits, SubscriptionPlan, partition_plans


@dataclass(frozen=True)
class GetPlanById:
    plan_id: int


@dataclass(frozen=True)
class GetPlans:
    user_type: str | None = None


@dataclass(frozen=True)
class GetPlanLimits:
    plan_id: int


def load_plan(plan_id: int) -> SubscriptionPlan:
    try:
        return current_domain.repository_for(SubscriptionPlan).get(plan_id)
    except ObjectNotFoundError:
        raise NotFoundError(f"Subscription plan {plan_id} not found", plan_id=plan_id)


@singledispatch
def ask(query):
    raise TypeError(f"Unsupported plan query: {type(query).__name__}")


@ask.register
def _(query: GetPlanById) -> SubscriptionPlan:
    return load_plan(query.plan_id)


@ask.register
def _(query: GetPlans) -> list[SubscriptionPlan]:
    repo = current_domain.repository_for(SubscriptionPlan)
    return partition_plans(repo._dao.query.all().items, query.user_type)


@ask.register
def _(query: GetPlanLimits) -> PlanLimits:
    return load_plan(query.plan_id).limits
