"""Order payment confirmation — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.command(part_of="Order")
class RecordPayment:
    """Payment for an order was confirmed by the payment provider."""

    order_id = Identifier(required=True)
    payment_id = String(required=True, max_length=255)
    payment_method = String(max_length=50)


@marketplace.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment(
            payment_id=command.payment_id,
            payment_method=command.payment_method,
        )
        repo.add(order)
        return order
