"""Subscription upgrade completion.

verify checkout → parse {userId, planId} → converge on the session's
SubscriptionPayment and move it to Completed (once), writing
PaymentProcessed to the outbox in the same commit → push the plan to the
subscriber's Owner or Provider profile.
"""

import structlog
from protean.utils.globals import current_domain

from settlement.completion.metadata import SubscriptionMetadata
from settlement.completion.outcome import SettlementOutcome, subscription_outcome
from settlement.completion.verification import verify_checkout
from settlement.errors import RequestValidationError, SettlementError
from settlement.lifecycle import DownstreamResult
from settlement.money import Money
from settlement.plan.plan import SubscriptionPlan
from settlement.plan.queries import load_plan
from settlement.plan.upgrade import apply_plan_to_profile
from settlement.subscription_payment.queries import get_subscription_payment
from settlement.subscription_payment.subscription_payment import SubscriptionPayment

logger = structlog.get_logger(__name__)


def _apply_plan(payment: SubscriptionPayment, plan: SubscriptionPlan) -> DownstreamResult:
    try:
        user_type, profile_id = apply_plan_to_profile(payment.user_id, plan)
    except SettlementError as exc:
        logger.error(
            "subscription.downstream_failed",
            payment_id=str(payment.id),
            user_id=payment.user_id,
            plan_id=plan.id,
            error=exc.message,
            retryable=exc.retryable,
        )
        return DownstreamResult(settled=False, error=exc.message)
    return DownstreamResult(settled=True, counterparty_type=user_type.value, counterparty_id=profile_id)


def complete_subscription_upgrade(session_id: str) -> SettlementOutcome:
    session = verify_checkout(session_id)
    metadata = SubscriptionMetadata.parse(session.metadata)
    plan = load_plan(metadata.plan_id)

    repo = current_domain.repository_for(SubscriptionPayment)
    existing = repo.find_by_session(session.session_id)
    if existing is not None and (existing.user_id, existing.plan_id) != (metadata.user_id, metadata.plan_id):
        raise RequestValidationError(
            "Checkout metadata does not match the recorded subscription payment",
            session_id=session.session_id,
        )

    def create() -> SubscriptionPayment:
        amount = session.amount_total if session.amount_total is not None else plan.price.value
        return SubscriptionPayment.create(
            user_id=metadata.user_id,
            plan_id=plan.id,
            amount=Money.of(amount, session.currency or plan.price.currency),
            gateway_session_id=session.session_id,
            customer_email=session.customer_email,
        )

    payment, transitioned = repo.complete_for_session(session.session_id, session.transaction_ref, create)
    if not transitioned:
        logger.info("subscription.completion_replayed", payment_id=str(payment.id), session_id=session.session_id)
        return subscription_outcome(payment, plan, replayed=True)

    payment, _ = repo.settle_downstream(payment, lambda p: _apply_plan(p, plan))
    logger.info(
        "subscription.completed",
        payment_id=str(payment.id),
        session_id=session.session_id,
        downstream_settled=payment.downstream_settled,
    )

    return subscription_outcome(payment, plan)


def retry_subscription_settlement(payment_id: str) -> SettlementOutcome:
    payment = get_subscription_payment(payment_id)
    if not payment.is_completed:
        raise RequestValidationError(f"Payment {payment_id} is {payment.status}, not Completed")
    plan = load_plan(payment.plan_id)

    repo = current_domain.repository_for(SubscriptionPayment)
    payment, attempted = repo.settle_downstream(payment, lambda p: _apply_plan(p, plan))
    logger.info(
        "subscription.downstream_retried",
        payment_id=str(payment.id),
        attempted=attempted,
        downstream_settled=payment.downstream_settled,
    )
    return subscription_outcome(payment, plan, replayed=not attempted)
