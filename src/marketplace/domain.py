"""Marketplace bounded context — Order Lifecycle & Settlement.

Tracks multi-seller orders and each seller's sub-order through shipment
milestones, splits paid orders into per-seller earnings with commission
deducted, and settles earnings once their holding period has elapsed.
"""

import structlog
from protean.domain import Domain

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)
