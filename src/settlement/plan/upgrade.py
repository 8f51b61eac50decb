"""UpgradePlan: apply a plan to a user's profile without a payment.

Resolves the user to an Owner first and a Provider second through the
Profiles service. Used by administrative flows and by the completion of
subscription checkouts.
"""

import structlog
from protean import handle
from protean.fields import Integer
from protean.utils.globals import current_domain

from settlement.domain import settlement
from settlement.errors import NotFoundError, RequestValidationError
from settlement.external import get_profiles
from settlement.plan.plan import SubscriptionPlan, UserType
from settlement.plan.queries import load_plan

logger = structlog.get_logger(__name__)


def apply_plan_to_profile(user_id: int, plan: SubscriptionPlan) -> tuple[UserType, int]:
    """Push ``plan``'s limits to the user's profile.

    Returns the profile type and id. Raises ``NotFoundError`` when the user
    has neither profile and ``RequestValidationError`` when Profiles refuses
    the update; transport failures propagate.
    """
    profiles = get_profiles()
    limits = plan.limits

    owner_id = profiles.fetch_owner_id_by_user_id(user_id)
    if owner_id > 0:
        if not profiles.update_owner_plan(owner_id, plan.id, limits.max_equipment):
            raise RequestValidationError(f"Failed to update plan for owner {owner_id}", owner_id=owner_id)
        return UserType.OWNER, owner_id

    provider_id = profiles.fetch_provider_id_by_user_id(user_id)
    if provider_id > 0:
        if not profiles.update_provider_plan(provider_id, plan.id, limits.max_clients):
            raise RequestValidationError(f"Failed to update plan for provider {provider_id}", provider_id=provider_id)
        return UserType.PROVIDER, provider_id

    raise NotFoundError(f"No Owner or Provider profile found for user {user_id}", user_id=user_id)


@settlement.command(part_of=SubscriptionPlan)
class UpgradePlan:
    user_id = Integer(required=True)
    plan_id = Integer(required=True)


@settlement.command_handler(part_of=SubscriptionPlan)
class UpgradePlanHandler:
    @handle(UpgradePlan)
    def upgrade_plan(self, command):
        plan = load_plan(command.plan_id)
        user_type, profile_id = apply_plan_to_profile(command.user_id, plan)
        logger.info(
            "plan.upgraded",
            user_id=command.user_id,
            plan_id=plan.id,
            user_type=user_type.value,
            profile_id=profile_id,
        )
        return plan


def upgrade_plan(user_id: int, plan_id: int) -> SubscriptionPlan:
    return current_domain.process(UpgradePlan(user_id=user_id, plan_id=plan_id), asynchronous=False)
