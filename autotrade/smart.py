"""autotrade.smart

Dollar-cost-averaging ("smart") orders.

Start
-----
The deposit must cover `reserve_steps(step_size_multiplier, num_steps)` units of
initial_buy_amount; anything above that is refunded. initial_buy_amount is
swapped right away to fix the average and take-profit prices, and the rest of
the requirement is kept as the DCA reserve (source_amount).

The trigger ladder and tranche sizes are computed once:
    mul_price_k  = step_price_multiplier ** k
    drop_k       = step_price_drop * mul_price_k
    scale_k      = scale_(k-1) - drop_k           (scale_0 = M)
    trigger_k    = avg_buy_price * scale_k / M
    tranche_k    = step_order_size * step_size_multiplier ** k

Sync
----
Tranches are bought in order while the quoted buy price is below the next
trigger. Afterwards the full target position is quoted for sale; if it would
realize at least the take-profit price (or the sync is forced) it is sold and
everything is paid back to the owner.

Quotes inside one sync are all taken against the same venue state; swaps
queued earlier in the call do not move later quotes.
"""

import logging

from .engine import OrderEngine, Response
from .errors import InsufficientAmountForSmartOrder, InvalidInput
from .order import OrderType, SmartMsg, SmartOrder
from .venue import Deposit

logger = logging.getLogger(__name__)


def reserve_steps(step_size_multiplier: int, num_steps: int) -> int:
    """
    Number of initial_buy_amount units a smart order must be funded with.

    The multiplier squares itself on every step: 1 + m + m**2 + m**4 + m**8 ...
    """
    total_steps = 1
    mul = step_size_multiplier
    for _ in range(num_steps):
        total_steps += mul
        mul *= mul
    return total_steps


def build_dca_ladder(avg_buy_price: int, config: SmartMsg, M: int) -> tuple[list[int], list[int]]:
    """Return (trigger_prices, tranche_sizes) for every DCA step."""
    trigger_prices = []
    tranche_sizes = []
    mul_price = 1
    mul_amount = 1
    scale = M
    for step in range(config.num_steps):
        mul_price *= config.step_price_multiplier
        drop = config.step_price_drop * mul_price
        if drop > scale:
            raise InvalidInput(step)
        trigger_prices.append(avg_buy_price * (scale - drop) // M)
        scale -= drop

        mul_amount *= config.step_size_multiplier
        tranche_sizes.append(mul_amount * config.step_order_size)
    return trigger_prices, tranche_sizes


class SmartOrderEngine(OrderEngine):
    order_type = OrderType.SMART
    name = "smart"

    def _validate(self, config: SmartMsg):
        if config.initial_buy_amount <= 0 or config.num_steps < 0:
            raise InvalidInput(config.initial_buy_amount)
        for value in (config.take_profit_pct, config.step_price_drop, config.step_price_multiplier):
            if value < 0:
                raise InvalidInput(value)
        if config.num_steps and (config.step_order_size <= 0 or config.step_size_multiplier <= 0):
            raise InvalidInput(config.step_order_size)

    def start(self, config: SmartMsg, deposit: Deposit, account: str) -> Response:
        with self.ledger.atomic():
            order_id, deposit_amount = self._open(config, deposit, account)
            self._validate(config)

            required = reserve_steps(config.step_size_multiplier, config.num_steps) * config.initial_buy_amount
            if deposit_amount < required:
                logger.warning("smart order for %s needs %d, got %d", account, required, deposit_amount)
                raise InsufficientAmountForSmartOrder(deposit_amount)

            instructions = []
            if deposit_amount > required:
                instructions.append(self.venue.build_transfer(config.source_token, deposit_amount - required, account))

            target_amount, target_token, swap = self.venue.quote_and_build_swap(config.pool, config.source_token, config.initial_buy_amount)
            instructions.extend(swap)
            avg_buy_price = self._price(config.initial_buy_amount, target_amount)
            trigger_prices, tranche_sizes = build_dca_ladder(avg_buy_price, config, self.M)

            order = SmartOrder(
                config=config,
                target_token=target_token,
                source_amount=required - config.initial_buy_amount,
                target_amount=target_amount,
                avg_buy_price=avg_buy_price,
                target_buy_price=self._take_profit(avg_buy_price, config.take_profit_pct),
                trigger_prices=trigger_prices,
                tranche_sizes=tranche_sizes,
            )
            self.ledger.save(account, self.order_type, order_id, order)

        logger.info("smart order %s/%d started: reserve %d, %d steps", account, order_id, order.source_amount, config.num_steps)
        return Response(action="start_smart", attributes={"address": account, "id": str(order_id)}, instructions=instructions)

    def sync(self, caller: str, owner: str | None, order_id: int, force_finish: bool = False) -> Response:
        owner = self._resolve_owner(caller, owner)
        with self.ledger.atomic():
            order = self._load_open(owner, order_id)
            config = order.config
            instructions = []

            while order.progress_index < config.num_steps:
                tranche = order.tranche_sizes[order.progress_index]
                if tranche > order.source_amount:
                    # reserve exhausted
                    break
                quoted, swap = self._quote_step(config.pool, config.source_token, tranche)
                if quoted == 0:
                    break
                buy_price = self._price(tranche, quoted)
                if buy_price < order.trigger_prices[order.progress_index]:
                    instructions.extend(swap)
                    order.source_amount -= tranche
                    order.target_amount += quoted
                    order.progress_index += 1
                    logger.debug("smart %s/%d bought step %d at %d", owner, order_id, order.progress_index, buy_price)
                else:
                    break

            proceeds, liquidation = self._liquidation_quote(order, owner)
            realized = proceeds * self.D // order.target_amount if order.target_amount else 0

            action = "sync_smart_waiting"
            if realized >= order.target_buy_price or force_finish:
                instructions = self._settle(owner, order_id, order, proceeds, instructions + liquidation)
                action = "sync_smart_success"
            self.ledger.save(owner, self.order_type, order_id, order)

        return self._response(action, owner, order_id, instructions)
