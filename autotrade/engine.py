"""autotrade.engine

Shared machinery for the three order engines.

Every engine exposes the same three operations:
- start(config, deposit, account): price the entry, register an id, store the record.
- sync(caller, owner, order_id, force_finish=False): evaluate triggers, run any
  swap legs whose condition holds, and either persist progress or settle.
- stop(account, order_id): sync with force_finish=True on the caller's own order.

Each operation returns a Response whose instructions must be applied by the
fund holder. Operations run inside ledger.atomic(): if anything raises, the
ledger is restored and no Response is produced.

Authorization
-------------
Anyone may sync their own orders. Syncing another account's order requires the
`authorize(caller)` callback to accept the caller (the service wires it to its
owner check). Without a callback such calls are always Unauthorized.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from .errors import AlreadyFinishedOrder, EmptyBalance, EmptySwap, OrderNotExist, Unauthorized, VenueError
from .ledger import OrderLedger
from .order import OrderType
from .venue import Deposit, SwapVenue

logger = logging.getLogger(__name__)


@dataclass
class Response:
    """Outcome of an operation: an action name, string attributes and the instructions to apply."""
    action: str
    attributes: dict[str, str] = field(default_factory=dict)
    instructions: list = field(default_factory=list)


def _deny(caller: str):
    raise Unauthorized(caller)


class OrderEngine:
    order_type: OrderType = None
    name = ""

    def __init__(self, ledger: OrderLedger, venue: SwapVenue, authorize: Callable[[str], None] | None = None):
        self.ledger = ledger
        self.venue = venue
        self.authorize = authorize or _deny

    @property
    def D(self) -> int:
        return self.venue.decimal_scale()

    @property
    def M(self) -> int:
        return self.venue.percent_scale()

    def stop(self, account: str, order_id: int) -> Response:
        return self.sync(account, account, order_id, force_finish=True)

    def sync(self, caller: str, owner: str | None, order_id: int, force_finish: bool = False) -> Response:
        raise NotImplementedError("sync must be implemented by subclass.")

    def _open(self, config, deposit: Deposit, account: str) -> tuple[int, int]:
        """Common start prologue. Returns (order_id, deposited source amount)."""
        if deposit.is_empty():
            raise EmptyBalance()
        order_id = self.ledger.register(account, self.order_type)
        self.venue.validate_token_in_pool(config.source_token, config.pool)
        amount = self.venue.extract_amount(deposit, config.source_token)
        return order_id, amount

    def _resolve_owner(self, caller: str, owner: str | None) -> str:
        real_owner = owner if owner is not None else caller
        if real_owner != caller:
            self.authorize(caller)
        return real_owner

    def _load_open(self, owner: str, order_id: int):
        # finished orders are retired too, so check finished before the active list
        record = self.ledger.load(owner, self.order_type, order_id)
        if record.finished:
            raise AlreadyFinishedOrder(order_id)
        if not self.ledger.is_active(owner, self.order_type, order_id):
            raise OrderNotExist(order_id)
        return record

    def _price(self, amount_in: int, amount_out: int) -> int:
        """amount_in per unit of amount_out, scaled by D."""
        if amount_out == 0:
            raise VenueError(f"zero output for input {amount_in}")
        return amount_in * self.D // amount_out

    def _take_profit(self, avg_buy_price: int, take_profit_pct: int) -> int:
        return avg_buy_price * (self.M + take_profit_pct) // self.M

    def _quote_step(self, pool: str, input_token, amount: int) -> tuple[int, list]:
        """Quote one ladder or DCA step. An amount too small to trade quotes as (0, [])."""
        try:
            quoted, _token, instructions = self.venue.quote_and_build_swap(pool, input_token, amount)
        except EmptySwap:
            return 0, []
        if quoted == 0:
            return 0, []
        return quoted, instructions

    def _liquidation_quote(self, record, owner: str) -> tuple[int, list]:
        """
        Quote the sale of every held target unit.

        A position too small for the venue to pay anything for is handed back
        in kind, so settlement always goes through.
        """
        proceeds, instructions = self._quote_step(record.config.pool, record.target_token, record.target_amount)
        if proceeds == 0 and record.target_amount > 0:
            logger.warning("%s order of %s: %d %s cannot be sold, returning it as is", self.name, owner, record.target_amount, record.target_token)
            return 0, [self.venue.build_transfer(record.target_token, record.target_amount, owner)]
        return proceeds, instructions

    def _settle(self, owner: str, order_id: int, record, proceeds: int, swap_instructions: list) -> list:
        """
        Finalize an order: retire its id, liquidate every held target unit, and pay
        the proceeds plus the residual source amount back to the owner.

        The record keeps the settled payout in source_amount; target_amount is zeroed.
        """
        self.ledger.retire(owner, self.order_type, order_id)
        payout = record.source_amount + proceeds
        instructions = list(swap_instructions)
        instructions.append(self.venue.build_transfer(record.config.source_token, payout, owner))
        record.finished = True
        record.source_amount = payout
        record.target_amount = 0
        logger.info("%s order %s/%d finished, paid out %d %s", self.name, owner, order_id, payout, record.config.source_token)
        return instructions

    def _response(self, action: str, owner: str, order_id: int, instructions: list | None = None) -> Response:
        return Response(action=action, attributes={"sender": owner, "id": str(order_id)}, instructions=instructions or [])
