"""autotrade.limit

Take-profit limit orders.

start swaps the whole deposit into the target token and records the entry
price. Each sync re-quotes a buy of the original source amount. When the
current price of the target token is strictly above the take-profit price (or
the sync is forced), the held target amount is sold and the proceeds are paid
back to the owner.
"""

import logging

from .engine import OrderEngine, Response
from .errors import InvalidInput
from .order import LimitMsg, LimitOrder, OrderType
from .venue import Deposit

logger = logging.getLogger(__name__)


class LimitOrderEngine(OrderEngine):
    order_type = OrderType.LIMIT
    name = "limit"

    def start(self, config: LimitMsg, deposit: Deposit, account: str) -> Response:
        with self.ledger.atomic():
            order_id, source_amount = self._open(config, deposit, account)
            if config.take_profit_pct < 0:
                raise InvalidInput(config.take_profit_pct)
            target_amount, target_token, instructions = self.venue.quote_and_build_swap(config.pool, config.source_token, source_amount)
            avg_buy_price = self._price(source_amount, target_amount)

            order = LimitOrder(
                config=config,
                target_token=target_token,
                initial_source_amount=source_amount,
                source_amount=0,
                target_amount=target_amount,
                avg_buy_price=avg_buy_price,
                target_buy_price=self._take_profit(avg_buy_price, config.take_profit_pct),
            )
            self.ledger.save(account, self.order_type, order_id, order)

        logger.info("limit order %s/%d started: %d -> %d, take profit at %d", account, order_id, source_amount, target_amount, order.target_buy_price)
        return Response(action="start_limit", attributes={"address": account, "id": str(order_id)}, instructions=instructions)

    def sync(self, caller: str, owner: str | None, order_id: int, force_finish: bool = False) -> Response:
        owner = self._resolve_owner(caller, owner)
        with self.ledger.atomic():
            order = self._load_open(owner, order_id)
            quoted, _unused = self._quote_step(order.config.pool, order.config.source_token, order.initial_source_amount)
            # nothing quotable means the take-profit condition cannot hold
            current_price = self._price(order.initial_source_amount, quoted) if quoted else 0
            logger.debug("limit %s/%d: current %d target %d", owner, order_id, current_price, order.target_buy_price)

            if current_price > order.target_buy_price or force_finish:
                proceeds, swap = self._liquidation_quote(order, owner)
                instructions = self._settle(owner, order_id, order, proceeds, swap)
                self.ledger.save(owner, self.order_type, order_id, order)
                return self._response("sync_limit_success", owner, order_id, instructions)

        return self._response("sync_limit_waiting", owner, order_id)
