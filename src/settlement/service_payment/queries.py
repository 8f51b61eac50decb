"""Read-side lookups for service payments."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from settlement.errors import NotFoundError
from settlement.service_payment.service_payment import ServicePayment


def get_service_payment(payment_id: str) -> ServicePayment:
    try:
        return current_domain.repository_for(ServicePayment).get(payment_id)
    except ObjectNotFoundError:
        raise NotFoundError(f"Service payment {payment_id} not found", service_payment_id=payment_id)


def get_service_payment_by_work_order(work_order_id: int) -> ServicePayment:
    payment = current_domain.repository_for(ServicePayment).find_by_work_order(work_order_id)
    if payment is None:
        raise NotFoundError(f"No service payment for work order {work_order_id}", work_order_id=work_order_id)
    return payment


def get_service_payments_by_owner(owner_id: int) -> list[ServicePayment]:
    return current_domain.repository_for(ServicePayment).find_by_owner(owner_id)


def get_service_payments_by_provider(provider_id: int) -> list[ServicePayment]:
    return current_domain.repository_for(ServicePayment).find_by_provider(provider_id)
