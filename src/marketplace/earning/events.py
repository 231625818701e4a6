"""Domain events for the Earning aggregate."""

from protean.fields import Date, DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Earning")
class EarningRecorded:
    """A seller earning was recorded and is on hold."""

    __version__ = 1

    earning_id = Identifier(required=True)
    seller_id = String(required=True)
    sub_order_id = String(required=True)
    order_id = String(required=True)
    gross_amount = Integer(required=True)
    commission_amount = Integer(required=True)
    net_amount = Integer(required=True)
    available_date = Date(required=True)
    recorded_at = DateTime(required=True)


@marketplace.event(part_of="Earning")
class EarningBecameAvailable:
    """The holding period elapsed and the earning can be paid out."""

    __version__ = 1

    earning_id = Identifier(required=True)
    seller_id = String(required=True)
    net_amount = Integer(required=True)
    available_at = DateTime(required=True)


@marketplace.event(part_of="Earning")
class EarningPaid:
    """The earning was included in a payout to the seller."""

    __version__ = 1

    earning_id = Identifier(required=True)
    seller_id = String(required=True)
    payout_id = String(required=True)
    net_amount = Integer(required=True)
    paid_at = DateTime(required=True)
