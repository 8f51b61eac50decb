"""Service payment checkout: command and handler.

Before any record exists the requester, the work order and the service
request are checked against each other:

1. the requester resolves to an Owner profile;
2. the work order is Resolved and has a positive cost;
3. the work order's service request names that Owner as its client;
4. the provider company exists;
5. the work order has not already been paid.

Only then is the ServicePayment created (commission split included) and
the gateway checkout opened with the payment's metadata. A gateway
failure leaves the payment recorded as Failed.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from settlement.commission import is_whole_cents
from settlement.config import get_settings
from settlement.domain import settlement
from settlement.errors import (
    DependencyUnavailableError,
    ForbiddenError,
    NotFoundError,
    RequestValidationError,
)
from settlement.external import get_profiles, get_service_requests, get_work_orders
from settlement.gateway import get_gateway
from settlement.gateway.port import CheckoutRequest
from settlement.service_payment.service_payment import ServicePayment

logger = structlog.get_logger(__name__)

RESOLVED_STATUS = "resolved"


@dataclass(frozen=True)
class ServiceCheckout:
    payment_id: str
    session_id: str | None = None
    url: str | None = None
    error: str | None = None


@settlement.command(part_of="ServicePayment")
class CreateServicePaymentCheckout:
    user_id = Integer(required=True)
    work_order_id = Integer(required=True)
    success_url = String(max_length=500)
    cancel_url = String(max_length=500)
    customer_email = String(max_length=255)


@settlement.command_handler(part_of=ServicePayment)
class CreateServicePaymentCheckoutHandler:
    @handle(CreateServicePaymentCheckout)
    def create_checkout(self, command):
        settings = get_settings()
        profiles = get_profiles()

        owner_id = profiles.fetch_owner_id_by_user_id(command.user_id)
        if owner_id <= 0:
            raise ForbiddenError("Only owners can pay for services", user_id=command.user_id)

        work_order = get_work_orders().get_work_order(command.work_order_id)
        if work_order is None:
            raise NotFoundError(f"Work order {command.work_order_id} not found", work_order_id=command.work_order_id)
        if work_order.status.lower() != RESOLVED_STATUS:
            raise RequestValidationError(
                f"Work order must be Resolved to be paid (status {work_order.status})",
                work_order_id=work_order.id,
            )
        if work_order.cost is None or work_order.cost <= 0:
            raise RequestValidationError("Work order has no cost assigned", work_order_id=work_order.id)
        if not is_whole_cents(work_order.cost):
            raise RequestValidationError(
                f"Work order cost has more than two decimal places: {work_order.cost}", work_order_id=work_order.id
            )
        if not work_order.service_request_id:
            raise RequestValidationError("Work order is not linked to a service request", work_order_id=work_order.id)

        service_request = get_service_requests().get_service_request(work_order.service_request_id)
        if service_request is None:
            raise NotFoundError(
                f"Service request {work_order.service_request_id} not found",
                service_request_id=work_order.service_request_id,
            )
        if service_request.client_id != owner_id:
            raise ForbiddenError("You can only pay for your own service requests", owner_id=owner_id)

        provider_id = service_request.company_id
        company_name = profiles.fetch_provider_company_name(provider_id)
        if not company_name:
            raise NotFoundError(f"Provider {provider_id} not found", provider_id=provider_id)

        repo = current_domain.repository_for(ServicePayment)
        if repo.find_completed_for_work_order(work_order.id) is not None:
            raise RequestValidationError(f"Work order {work_order.id} has already been paid", work_order_id=work_order.id)

        description = f"Service payment for Work Order #{work_order.work_order_number}"
        payment = ServicePayment.create(
            work_order_id=work_order.id,
            service_request_id=service_request.id,
            owner_id=owner_id,
            provider_id=provider_id,
            total_amount=work_order.cost,
            fee_percentage=settings.platform_fee_percentage,
            currency=settings.currency,
            description=description,
        )

        try:
            session = get_gateway().create_checkout(
                CheckoutRequest(
                    amount=payment.total_amount.value,
                    currency=payment.currency,
                    product_name=description,
                    product_description=f"{work_order.title} ({company_name})",
                    success_url=command.success_url or settings.success_url,
                    cancel_url=command.cancel_url or settings.cancel_url,
                    customer_email=command.customer_email,
                    metadata=payment.checkout_metadata(),
                )
            )
        except DependencyUnavailableError as exc:
            payment.fail(f"Checkout creation failed: {exc.message}")
            repo.add(payment)
            logger.error("service_payment.checkout_failed", payment_id=str(payment.id), error=exc.message)
            return ServiceCheckout(payment_id=str(payment.id), error=exc.message)

        payment.attach_checkout(session.session_id)
        repo.add(payment)
        logger.info(
            "service_payment.checkout_created",
            payment_id=str(payment.id),
            session_id=session.session_id,
            work_order_id=work_order.id,
            platform_fee=payment.platform_fee.amount,
            provider_amount=payment.provider_amount.amount,
        )
        return ServiceCheckout(payment_id=str(payment.id), session_id=session.session_id, url=session.url)


def create_service_payment_checkout(command: CreateServicePaymentCheckout) -> ServiceCheckout:
    """Process the command; a gateway failure surfaces after the Failed
    payment has been committed."""
    checkout = current_domain.process(command, asynchronous=False)
    if checkout.error:
        raise DependencyUnavailableError(checkout.error, payment_id=checkout.payment_id)
    return checkout
