"""autotrade.grid

Symmetric grid orders.

start keeps total_amount of the deposit (refunding any excess), swaps half of
it into the target token and uses that swap's price as the grid centre. With
delta = price_range_pct // num_pairs the ladders are

    sell_prices[i] = avg * (M + delta * (i + 1)) / M
    buy_prices[i]  = avg * (M - delta * (i + 1)) / M

and every level trades step_size = remaining_source // num_pairs.

On sync the buy ladder and the sell ladder advance independently, one level per
satisfied condition. The sell ladder prices a level by quoting step_size of
source into the target token (mid amount) and then quoting that mid amount back
to source; only the second leg is executed. A grid never finishes on its own:
only a forced sync (stop) settles it.
"""

import logging

from .engine import OrderEngine, Response
from .errors import InsufficientAmountForGridOrder, InvalidInput
from .order import GridMsg, GridOrder, OrderType
from .venue import Deposit

logger = logging.getLogger(__name__)


def build_grid_ladders(avg_buy_price: int, num_pairs: int, price_range_pct: int, M: int) -> tuple[list[int], list[int]]:
    """Return (buy_prices, sell_prices), closest level first."""
    delta = price_range_pct // num_pairs
    if delta * num_pairs > M:
        raise InvalidInput(price_range_pct)
    buy_prices = [avg_buy_price * (M - delta * i) // M for i in range(1, num_pairs + 1)]
    sell_prices = [avg_buy_price * (M + delta * i) // M for i in range(1, num_pairs + 1)]
    return buy_prices, sell_prices


class GridOrderEngine(OrderEngine):
    order_type = OrderType.GRID
    name = "grid"

    def start(self, config: GridMsg, deposit: Deposit, account: str) -> Response:
        with self.ledger.atomic():
            order_id, deposit_amount = self._open(config, deposit, account)
            if config.num_pairs <= 0 or config.total_amount <= 0 or config.price_range_pct < 0:
                raise InvalidInput(config.num_pairs)

            instructions = []
            if deposit_amount < config.total_amount:
                logger.warning("grid order for %s needs %d, got %d", account, config.total_amount, deposit_amount)
                raise InsufficientAmountForGridOrder(deposit_amount)
            if deposit_amount > config.total_amount:
                instructions.append(self.venue.build_transfer(config.source_token, deposit_amount - config.total_amount, account))

            first_swap_amount = config.total_amount // 2
            target_amount, target_token, swap = self.venue.quote_and_build_swap(config.pool, config.source_token, first_swap_amount)
            instructions.extend(swap)
            avg_buy_price = self._price(first_swap_amount, target_amount)
            buy_prices, sell_prices = build_grid_ladders(avg_buy_price, config.num_pairs, config.price_range_pct, self.M)

            remaining = config.total_amount - first_swap_amount
            step_size = remaining // config.num_pairs
            if step_size == 0:
                raise InvalidInput(remaining)

            order = GridOrder(
                config=config,
                target_token=target_token,
                buy_prices=buy_prices,
                sell_prices=sell_prices,
                step_size=step_size,
                source_amount=remaining,
                target_amount=target_amount,
            )
            self.ledger.save(account, self.order_type, order_id, order)

        logger.info("grid order %s/%d started around %d, %d pairs of %d", account, order_id, avg_buy_price, config.num_pairs, step_size)
        return Response(action="start_grid", attributes={"address": account, "id": str(order_id)}, instructions=instructions)

    def _advance_buys(self, order: GridOrder, instructions: list):
        config = order.config
        while order.buy_progress < config.num_pairs:
            if order.step_size > order.source_amount:
                break
            quoted, swap = self._quote_step(config.pool, config.source_token, order.step_size)
            if quoted == 0:
                break
            price = self._price(order.step_size, quoted)
            if price > order.buy_prices[order.buy_progress]:
                break
            instructions.extend(swap)
            order.source_amount -= order.step_size
            order.target_amount += quoted
            order.buy_progress += 1
            logger.debug("grid buy level %d filled at %d", order.buy_progress, price)

    def _advance_sells(self, order: GridOrder, instructions: list):
        config = order.config
        while order.sell_progress < config.num_pairs:
            # the source->target leg only sizes the level; its instructions are dropped
            mid_amount, _dropped = self._quote_step(config.pool, config.source_token, order.step_size)
            if mid_amount == 0 or mid_amount > order.target_amount:
                break
            source_back, swap = self._quote_step(config.pool, order.target_token, mid_amount)
            if source_back == 0:
                break
            price = self._price(source_back, mid_amount)
            if price < order.sell_prices[order.sell_progress]:
                break
            instructions.extend(swap)
            order.source_amount += source_back
            order.target_amount -= mid_amount
            order.sell_progress += 1
            logger.debug("grid sell level %d filled at %d", order.sell_progress, price)

    def sync(self, caller: str, owner: str | None, order_id: int, force_finish: bool = False) -> Response:
        owner = self._resolve_owner(caller, owner)
        with self.ledger.atomic():
            order = self._load_open(owner, order_id)
            instructions = []
            self._advance_buys(order, instructions)
            self._advance_sells(order, instructions)

            action = "sync_grid_waiting"
            if force_finish:
                proceeds, liquidation = self._liquidation_quote(order, owner)
                instructions = self._settle(owner, order_id, order, proceeds, instructions + liquidation)
                action = "sync_grid_success"
            self.ledger.save(owner, self.order_type, order_id, order)

        return self._response(action, owner, order_id, instructions)
