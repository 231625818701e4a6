"""Payout bookkeeping — command and handler.

Payouts are executed by an external process. It reports back which
available earnings it paid so they leave the seller's available balance.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.earning.earning import Earning


@marketplace.command(part_of="Earning")
class MarkEarningPaid:
    earning_id = Identifier(required=True)
    payout_id = String(required=True, max_length=255)


@marketplace.command_handler(part_of=Earning)
class PayoutHandler:
    @handle(MarkEarningPaid)
    def mark_paid(self, command):
        repo = current_domain.repository_for(Earning)
        earning = repo.get(command.earning_id)
        earning.mark_paid(command.payout_id)
        repo.add(earning)
        return earning
