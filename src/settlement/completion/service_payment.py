"""Service payment completion.

verify checkout → parse the service metadata → load the pre-created
ServicePayment and check the metadata against it (ids and re-derived
commission split) → move it to Completed (once), writing the
ServicePaymentCompleted and PaymentProcessed events to the outbox in the
same commit → credit the provider's balance with the stored provider
amount → notify the provider.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.commission import split
from settlement.completion.metadata import ServicePaymentMetadata
from settlement.completion.outcome import SettlementOutcome, service_outcome
from settlement.completion.verification import verify_checkout
from settlement.errors import DependencyUnavailableError, NotFoundError, RequestValidationError
from settlement.external import get_notifications, get_profiles, get_work_orders
from settlement.gateway.port import CheckoutSession
from settlement.lifecycle import DownstreamResult
from settlement.service_payment.queries import get_service_payment
from settlement.service_payment.service_payment import ServicePayment

logger = structlog.get_logger(__name__)

NOTIFICATION_TITLE = "Payment Received"


def check_metadata_matches(payment: ServicePayment, metadata: ServicePaymentMetadata, session: CheckoutSession) -> None:
    """Reject a checkout whose metadata disagrees with the stored payment."""
    if payment.gateway_session_id and payment.gateway_session_id != session.session_id:
        raise RequestValidationError(
            "Checkout session does not belong to this service payment",
            service_payment_id=str(payment.id),
        )

    recorded_ids = (payment.work_order_id, payment.service_request_id, payment.owner_id, payment.provider_id)
    claimed_ids = (metadata.work_order_id, metadata.service_request_id, metadata.owner_id, metadata.provider_id)
    if recorded_ids != claimed_ids:
        raise RequestValidationError(
            "Checkout metadata does not match the service payment",
            service_payment_id=str(payment.id),
        )

    derived = split(metadata.total_amount, payment.fee_percentage)
    if (
        derived != payment.commission
        or metadata.platform_fee != derived.platform_fee
        or metadata.provider_amount != derived.counterparty_amount
    ):
        raise RequestValidationError(
            "Checkout amounts do not match the service payment",
            service_payment_id=str(payment.id),
        )

    if session.amount_total is not None and session.amount_total != payment.total_amount.value:
        raise RequestValidationError(
            f"Gateway charged {session.amount_total}, expected {payment.total_amount.amount}",
            service_payment_id=str(payment.id),
        )


def _credit_provider(payment: ServicePayment) -> DownstreamResult:
    try:
        credited = get_profiles().update_provider_balance(payment.provider_id, payment.provider_amount.value)
    except DependencyUnavailableError as exc:
        error = exc.message
    else:
        if credited:
            return DownstreamResult(settled=True, counterparty_type="Provider", counterparty_id=payment.provider_id)
        error = f"Profiles rejected balance update for provider {payment.provider_id}"

    logger.error(
        "service_payment.downstream_failed",
        service_payment_id=str(payment.id),
        provider_id=payment.provider_id,
        provider_amount=payment.provider_amount.amount,
        error=error,
    )
    return DownstreamResult(settled=False, error=error, counterparty_type="Provider", counterparty_id=payment.provider_id)


def _notify_provider(payment: ServicePayment) -> None:
    """Best effort; failures are logged and dropped."""
    try:
        user_id = get_profiles().get_provider_user_id_by_provider_id(payment.provider_id)
        if not user_id:
            logger.warning("service_payment.notify_skipped", provider_id=payment.provider_id)
            return
        work_order = get_work_orders().get_work_order(payment.work_order_id)
        title = work_order.title if work_order else f"Work Order {payment.work_order_id}"
        message = f"Payment of ${payment.provider_amount.value:.2f} received for service: {title}"
        if not get_notifications().create_in_app_notification(user_id, NOTIFICATION_TITLE, message):
            logger.warning("service_payment.notify_rejected", user_id=user_id)
    except Exception as exc:
        logger.warning("service_payment.notify_failed", service_payment_id=str(payment.id), error=str(exc))


def complete_service_payment(session_id: str) -> SettlementOutcome:
    session = verify_checkout(session_id)
    metadata = ServicePaymentMetadata.parse(session.metadata)

    repo = current_domain.repository_for(ServicePayment)
    try:
        payment = repo.get(metadata.service_payment_id)
    except ObjectNotFoundError:
        raise NotFoundError(
            f"Service payment {metadata.service_payment_id} not found",
            service_payment_id=metadata.service_payment_id,
        )
    check_metadata_matches(payment, metadata, session)

    payment, transitioned = repo.complete_pending(
        str(payment.id),
        charge_ref=session.transaction_ref or session.session_id,
        txn_ref=session.session_id,
    )
    if not transitioned:
        logger.info("service_payment.completion_replayed", service_payment_id=str(payment.id), session_id=session_id)
        return service_outcome(payment, replayed=True)

    payment, _ = repo.settle_downstream(str(payment.id), _credit_provider)
    logger.info(
        "service_payment.completed",
        service_payment_id=str(payment.id),
        session_id=session.session_id,
        platform_fee=payment.platform_fee.amount,
        provider_amount=payment.provider_amount.amount,
        downstream_settled=payment.downstream_settled,
    )
    _notify_provider(payment)
    return service_outcome(payment)


def retry_service_settlement(payment_id: str) -> SettlementOutcome:
    payment = get_service_payment(payment_id)
    if not payment.is_completed:
        raise RequestValidationError(f"Service payment {payment_id} is {payment.status}, not Completed")

    repo = current_domain.repository_for(ServicePayment)
    payment, attempted = repo.settle_downstream(str(payment.id), _credit_provider)
    logger.info(
        "service_payment.downstream_retried",
        service_payment_id=str(payment.id),
        attempted=attempted,
        downstream_settled=payment.downstream_settled,
    )
    return service_outcome(payment, replayed=not attempted)
