"""SubscriptionPayment aggregate: a subscriber paying the platform for a plan.

One record per gateway checkout session; the session id is the idempotency
anchor that the checkout-creation and completion paths converge on.

State Machine:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED
"""

from collections.abc import Callable
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Integer, String, ValueObject

from settlement.domain import settlement
from settlement.lifecycle import (
    DownstreamResult,
    PaymentStatus,
    PaymentType,
    assert_can_transition,
    is_settled,
)
from settlement.locks import payment_lock
from settlement.money import Money
from settlement.subscription_payment.events import (
    SubscriptionCheckoutStarted,
    SubscriptionPaymentCompleted,
    SubscriptionPaymentFailed,
    SubscriptionPaymentProcessed,
    SubscriptionPaymentRefunded,
)


@settlement.aggregate
class SubscriptionPayment:
    user_id = Integer(required=True)
    plan_id = Integer(required=True)
    amount = ValueObject(Money)
    gateway_session_id = String(max_length=255, required=True, unique=True)
    customer_email = String(max_length=255)
    description = String(max_length=500)
    status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    gateway_transaction_ref = String(max_length=255)
    refund_ref = String(max_length=255)
    refunded_amount = ValueObject(Money)
    failure_reason = String(max_length=500)
    counterparty_type = String(max_length=20)
    counterparty_id = Integer()
    downstream_settled = Boolean(default=False)
    downstream_error = String(max_length=500)
    created_at = DateTime()
    completed_at = DateTime()
    refunded_at = DateTime()

    @classmethod
    def create(
        cls,
        user_id: int,
        plan_id: int,
        amount: Money,
        gateway_session_id: str,
        customer_email: str | None = None,
        description: str | None = None,
    ) -> "SubscriptionPayment":
        now = datetime.now(UTC)
        payment = cls(
            user_id=user_id,
            plan_id=plan_id,
            amount=amount,
            gateway_session_id=gateway_session_id,
            customer_email=customer_email,
            description=description or f"Subscription Plan #{plan_id}",
            status=PaymentStatus.PENDING.value,
            created_at=now,
        )
        payment.raise_(
            SubscriptionCheckoutStarted(
                payment_id=str(payment.id),
                user_id=user_id,
                plan_id=plan_id,
                amount=amount.amount,
                currency=amount.currency,
                gateway_session_id=gateway_session_id,
                started_at=now,
            )
        )
        return payment

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    def complete(self, transaction_ref: str | None) -> None:
        assert_can_transition(self.status, PaymentStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.gateway_transaction_ref = transaction_ref
        self.completed_at = now
        self.raise_(
            SubscriptionPaymentCompleted(
                payment_id=str(self.id),
                user_id=self.user_id,
                plan_id=self.plan_id,
                amount=self.amount.amount,
                currency=self.amount.currency,
                gateway_session_id=self.gateway_session_id,
                gateway_transaction_ref=transaction_ref,
                completed_at=now,
            )
        )
        self.raise_(
            SubscriptionPaymentProcessed(
                payment_id=str(self.id),
                payment_type=PaymentType.SUBSCRIPTION.value,
                user_id=self.user_id,
                amount=self.amount.amount,
                currency=self.amount.currency,
                subscription_id=self.plan_id,
                gateway_session_id=self.gateway_session_id,
                occurred_at=now,
            )
        )

    def fail(self, reason: str) -> None:
        assert_can_transition(self.status, PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason
        self.raise_(
            SubscriptionPaymentFailed(
                payment_id=str(self.id),
                user_id=self.user_id,
                plan_id=self.plan_id,
                reason=reason,
                failed_at=datetime.now(UTC),
            )
        )

    def refund(self, refund_ref: str | None, amount=None) -> None:
        """Record a refund of ``amount``, or of the whole payment when omitted.

        A partial refund also ends the lifecycle; the refunded amount is kept.
        """
        assert_can_transition(self.status, PaymentStatus.REFUNDED)
        now = datetime.now(UTC)
        self.status = PaymentStatus.REFUNDED.value
        self.refund_ref = refund_ref
        self.refunded_amount = Money.of(self.amount.value if amount is None else amount, self.amount.currency)
        self.refunded_at = now
        self.raise_(
            SubscriptionPaymentRefunded(
                payment_id=str(self.id),
                user_id=self.user_id,
                plan_id=self.plan_id,
                amount=self.amount.amount,
                refunded_amount=self.refunded_amount.amount,
                refund_ref=refund_ref,
                refunded_at=now,
            )
        )

    def record_downstream(self, result: DownstreamResult) -> None:
        self.downstream_settled = result.settled
        self.downstream_error = None if result.settled else (result.error or "")[:500]
        if result.counterparty_type:
            self.counterparty_type = result.counterparty_type
            self.counterparty_id = result.counterparty_id


@settlement.repository(part_of=SubscriptionPayment)
class SubscriptionPaymentRepository:
    def find_by_session(self, session_id: str) -> SubscriptionPayment | None:
        items = self._dao.query.filter(gateway_session_id=session_id).all().items
        return items[0] if items else None

    def find_by_user(self, user_id: int) -> list[SubscriptionPayment]:
        items = self._dao.query.filter(user_id=user_id).all().items
        return sorted(items, key=lambda payment: payment.created_at, reverse=True)

    def complete_for_session(
        self,
        session_id: str,
        transaction_ref: str | None,
        create: Callable[[], SubscriptionPayment],
    ) -> tuple[SubscriptionPayment, bool]:
        """Move the session's payment to Completed, creating it if absent.

        Returns the payment and whether this call made the transition. A
        payment that is already settled is returned untouched.
        """
        with payment_lock(f"subscription:{session_id}"):
            payment = self.find_by_session(session_id)
            if payment is None:
                payment = create()
            elif is_settled(payment.status):
                return payment, False
            payment.complete(transaction_ref)
            self.add(payment)
            return payment, True

    def settle_downstream(
        self,
        payment: SubscriptionPayment,
        settle: Callable[[SubscriptionPayment], DownstreamResult],
    ) -> tuple[SubscriptionPayment, bool]:
        """Run ``settle`` once for a completed payment whose counterparty
        mutation is outstanding, and record its result."""
        with payment_lock(f"subscription:{payment.gateway_session_id}"):
            payment = self.get(payment.id)
            if payment.downstream_settled or not payment.is_completed:
                return payment, False
            payment.record_downstream(settle(payment))
            self.add(payment)
            return payment, True
