"""Settlement bounded context: subscription and service payments.

Records what subscribers pay the platform for a plan and what Owners pay
Providers for resolved work orders, splits service payments into platform
commission and provider share, and completes checkouts against the payment
gateway and the sibling Profiles service without a distributed transaction.
"""

import structlog
from protean.domain import Domain

settlement = Domain(name="settlement")

logger = structlog.get_logger(__name__)
