"""ServicePayment aggregate: an Owner paying a Provider for a work order.

The commission split is computed once, when the checkout is created, and
stored with the payment; completion only transitions state. Owner,
provider, work-order and service-request ids are opaque references into
sibling services.

State Machine:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED
"""

from collections.abc import Callable
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Integer, String, ValueObject

from settlement.commission import CommissionSplit, format_amount, parse_amount, split
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
from settlement.service_payment.events import (
    ServicePaymentCompleted,
    ServicePaymentCreated,
    ServicePaymentFailed,
    ServicePaymentProcessed,
    ServicePaymentRefunded,
)

SERVICE_PAYMENT_TYPE = "service"


@settlement.aggregate
class ServicePayment:
    work_order_id = Integer(required=True)
    service_request_id = Integer(required=True)
    owner_id = Integer(required=True)
    provider_id = Integer(required=True)
    total_amount = ValueObject(Money)
    platform_fee = ValueObject(Money)
    provider_amount = ValueObject(Money)
    fee_percentage = String(max_length=10, required=True)
    gateway_charge_ref = String(max_length=255)
    gateway_txn_ref = String(max_length=255)
    gateway_session_id = String(max_length=255)
    refund_ref = String(max_length=255)
    refunded_amount = ValueObject(Money)
    status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    description = String(max_length=500)
    failure_reason = String(max_length=500)
    downstream_settled = Boolean(default=False)
    downstream_error = String(max_length=500)
    created_at = DateTime()
    completed_at = DateTime()
    refunded_at = DateTime()

    @classmethod
    def create(
        cls,
        work_order_id: int,
        service_request_id: int,
        owner_id: int,
        provider_id: int,
        total_amount,
        fee_percentage,
        currency: str,
        description: str,
    ) -> "ServicePayment":
        commission = split(total_amount, fee_percentage)
        now = datetime.now(UTC)
        payment = cls(
            work_order_id=work_order_id,
            service_request_id=service_request_id,
            owner_id=owner_id,
            provider_id=provider_id,
            total_amount=Money.of(commission.total_amount, currency),
            platform_fee=Money.of(commission.platform_fee, currency),
            provider_amount=Money.of(commission.counterparty_amount, currency),
            fee_percentage=str(commission.fee_percentage),
            description=description,
            status=PaymentStatus.PENDING.value,
            created_at=now,
        )
        payment.raise_(
            ServicePaymentCreated(
                service_payment_id=str(payment.id),
                work_order_id=work_order_id,
                service_request_id=service_request_id,
                owner_id=owner_id,
                provider_id=provider_id,
                total_amount=payment.total_amount.amount,
                platform_fee=payment.platform_fee.amount,
                provider_amount=payment.provider_amount.amount,
                fee_percentage=payment.fee_percentage,
                currency=payment.total_amount.currency,
                created_at=now,
            )
        )
        return payment

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    @property
    def commission(self) -> CommissionSplit:
        return CommissionSplit(
            total_amount=self.total_amount.value,
            fee_percentage=parse_amount(self.fee_percentage),
            platform_fee=self.platform_fee.value,
            counterparty_amount=self.provider_amount.value,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    def checkout_metadata(self) -> dict[str, str]:
        """Key/value pairs attached to the gateway checkout."""
        return {
            "paymentType": SERVICE_PAYMENT_TYPE,
            "servicePaymentId": str(self.id),
            "workOrderId": str(self.work_order_id),
            "serviceRequestId": str(self.service_request_id),
            "ownerId": str(self.owner_id),
            "providerId": str(self.provider_id),
            "totalAmount": format_amount(self.total_amount.value),
            "platformFee": format_amount(self.platform_fee.value),
            "providerAmount": format_amount(self.provider_amount.value),
        }

    def attach_checkout(self, session_id: str) -> None:
        self.gateway_session_id = session_id

    def complete(self, charge_ref: str | None, txn_ref: str | None) -> None:
        assert_can_transition(self.status, PaymentStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.gateway_charge_ref = charge_ref
        self.gateway_txn_ref = txn_ref
        self.gateway_session_id = self.gateway_session_id or txn_ref
        self.completed_at = now
        self.raise_(
            ServicePaymentCompleted(
                service_payment_id=str(self.id),
                work_order_id=self.work_order_id,
                owner_id=self.owner_id,
                provider_id=self.provider_id,
                total_amount=self.total_amount.amount,
                platform_fee=self.platform_fee.amount,
                provider_amount=self.provider_amount.amount,
                currency=self.currency,
                gateway_charge_ref=charge_ref,
                gateway_session_id=self.gateway_session_id,
                completed_at=now,
            )
        )
        self.raise_(
            ServicePaymentProcessed(
                payment_id=str(self.id),
                payment_type=PaymentType.SERVICE.value,
                user_id=self.owner_id,
                amount=self.total_amount.amount,
                currency=self.currency,
                service_payment_id=str(self.id),
                provider_id=self.provider_id,
                provider_amount=self.provider_amount.amount,
                gateway_session_id=self.gateway_session_id,
                occurred_at=now,
            )
        )

    def fail(self, reason: str) -> None:
        assert_can_transition(self.status, PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason[:500]
        self.raise_(
            ServicePaymentFailed(
                service_payment_id=str(self.id),
                work_order_id=self.work_order_id,
                reason=self.failure_reason,
                failed_at=datetime.now(UTC),
            )
        )

    def refund(self, refund_ref: str | None, amount=None) -> None:
        """Record a refund to the Owner of ``amount``, or of the whole payment
        when omitted. A partial refund also ends the lifecycle."""
        assert_can_transition(self.status, PaymentStatus.REFUNDED)
        now = datetime.now(UTC)
        self.status = PaymentStatus.REFUNDED.value
        self.refund_ref = refund_ref
        self.refunded_amount = Money.of(self.total_amount.value if amount is None else amount, self.currency)
        self.refunded_at = now
        self.raise_(
            ServicePaymentRefunded(
                service_payment_id=str(self.id),
                work_order_id=self.work_order_id,
                total_amount=self.total_amount.amount,
                refunded_amount=self.refunded_amount.amount,
                provider_id=self.provider_id,
                provider_amount=self.provider_amount.amount,
                refund_ref=refund_ref,
                refunded_at=now,
            )
        )

    def record_downstream(self, result: DownstreamResult) -> None:
        self.downstream_settled = result.settled
        self.downstream_error = None if result.settled else (result.error or "")[:500]


@settlement.repository(part_of=ServicePayment)
class ServicePaymentRepository:
    def _newest_first(self, **filters) -> list[ServicePayment]:
        items = self._dao.query.filter(**filters).all().items
        return sorted(items, key=lambda payment: payment.created_at, reverse=True)

    def find_by_work_order(self, work_order_id: int) -> ServicePayment | None:
        """Most recent payment for the work order."""
        payments = self._newest_first(work_order_id=work_order_id)
        return payments[0] if payments else None

    def find_completed_for_work_order(self, work_order_id: int) -> ServicePayment | None:
        for payment in self._newest_first(work_order_id=work_order_id):
            if is_settled(payment.status):
                return payment
        return None

    def find_by_owner(self, owner_id: int) -> list[ServicePayment]:
        return self._newest_first(owner_id=owner_id)

    def find_by_provider(self, provider_id: int) -> list[ServicePayment]:
        return self._newest_first(provider_id=provider_id)

    def complete_pending(
        self,
        payment_id: str,
        charge_ref: str | None,
        txn_ref: str | None,
    ) -> tuple[ServicePayment, bool]:
        """Move a Pending payment to Completed.

        Returns the payment and whether this call made the transition. A
        payment that is already settled is returned untouched.
        """
        with payment_lock(f"service:{payment_id}"):
            payment = self.get(payment_id)
            if is_settled(payment.status):
                return payment, False
            payment.complete(charge_ref, txn_ref)
            self.add(payment)
            return payment, True

    def settle_downstream(
        self,
        payment_id: str,
        settle: Callable[[ServicePayment], DownstreamResult],
    ) -> tuple[ServicePayment, bool]:
        """Run ``settle`` once for a completed payment whose provider credit
        is outstanding, and record its result."""
        with payment_lock(f"service:{payment_id}"):
            payment = self.get(payment_id)
            if payment.downstream_settled or not payment.is_completed:
                return payment, False
            payment.record_downstream(settle(payment))
            self.add(payment)
            return payment, True
