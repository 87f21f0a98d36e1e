"""Native currency payments sent from the contract's wallet."""

import logging
from functools import partial

from rpc import HostRPC
from runtime import CallContext, Promise, ensure_amount

logger = logging.getLogger(__name__)

def send_payment(ctx: CallContext, host: HostRPC, receiver_id: str, amount: int) -> Promise:
    """Schedule a fire-and-forget payment of amount to receiver_id.

    No continuation is attached: a failed payment is logged by the runtime
    and never reflected back into contract state.
    """
    ensure_amount(amount)
    logger.debug(f"Scheduling payment of {amount} to {receiver_id}")
    return ctx.schedule(Promise(
        description=f"send_payment({amount} -> {receiver_id})",
        action=partial(host.send_payment, receiver_id=receiver_id, amount=str(amount))
    ))
