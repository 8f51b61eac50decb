"""Unified result of a completion or downstream retry."""

from dataclasses import dataclass, field
from enum import Enum

from settlement.lifecycle import PaymentType
from settlement.plan.plan import SubscriptionPlan
from settlement.service_payment.service_payment import ServicePayment
from settlement.subscription_payment.subscription_payment import SubscriptionPayment


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    PENDING_DOWNSTREAM_SETTLEMENT = "pending_downstream_settlement"


@dataclass(frozen=True)
class SettlementOutcome:
    """What a completion returns; identical for the first call and replays
    except for ``replayed``."""

    payment_id: str
    payment_type: PaymentType
    status: OutcomeStatus
    downstream_settled: bool
    message: str
    transaction_ref: str | None = None
    details: dict = field(default_factory=dict)
    replayed: bool = field(default=False, compare=False)


def _status(settled: bool) -> OutcomeStatus:
    return OutcomeStatus.COMPLETED if settled else OutcomeStatus.PENDING_DOWNSTREAM_SETTLEMENT


def subscription_outcome(
    payment: SubscriptionPayment,
    plan: SubscriptionPlan,
    replayed: bool = False,
) -> SettlementOutcome:
    settled = bool(payment.downstream_settled)
    if settled:
        message = f"Plan upgraded to {plan.plan_name}"
    else:
        message = f"Payment recorded; plan update pending: {payment.downstream_error or 'not attempted'}"
    return SettlementOutcome(
        payment_id=str(payment.id),
        payment_type=PaymentType.SUBSCRIPTION,
        status=_status(settled),
        downstream_settled=settled,
        message=message,
        transaction_ref=payment.gateway_transaction_ref,
        details={
            "user_id": payment.user_id,
            "plan_id": plan.id,
            "plan_name": plan.plan_name,
            "amount": payment.amount.amount,
            "currency": payment.amount.currency,
            "gateway_session_id": payment.gateway_session_id,
            "counterparty_type": payment.counterparty_type,
            "counterparty_id": payment.counterparty_id,
            "downstream_error": payment.downstream_error,
        },
        replayed=replayed,
    )


def service_outcome(payment: ServicePayment, replayed: bool = False) -> SettlementOutcome:
    settled = bool(payment.downstream_settled)
    if settled:
        message = f"Payment completed; provider credited {payment.provider_amount.amount}"
    else:
        message = f"Payment recorded; provider balance update pending: {payment.downstream_error or 'not attempted'}"
    return SettlementOutcome(
        payment_id=str(payment.id),
        payment_type=PaymentType.SERVICE,
        status=_status(settled),
        downstream_settled=settled,
        message=message,
        transaction_ref=payment.gateway_charge_ref,
        details={
            "work_order_id": payment.work_order_id,
            "service_request_id": payment.service_request_id,
            "owner_id": payment.owner_id,
            "provider_id": payment.provider_id,
            "total_amount": payment.total_amount.amount,
            "platform_fee": payment.platform_fee.amount,
            "provider_amount": payment.provider_amount.amount,
            "currency": payment.currency,
            "gateway_session_id": payment.gateway_session_id,
            "downstream_error": payment.downstream_error,
        },
        replayed=replayed,
    )
