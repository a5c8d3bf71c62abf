"""autotrade.order

Order types, strategy messages and order records.

A strategy message (LimitMsg, SmartMsg, GridMsg) is what an account submits
together with its deposit. The matching engine turns it into an order record
(LimitOrder, SmartOrder, GridOrder) which the ledger stores under
(order_type, account, id).

All amounts are non-negative integers. Prices are integers scaled by the
venue's decimal scale D, percentages by its percent scale M.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from .errors import InvalidInput
from .venue import Token


class OrderType(int, Enum):
    LIMIT = 0
    SMART = 1
    GRID = 2

    @classmethod
    def parse(cls, value) -> "OrderType":
        """Accept an OrderType or its integer code. Unknown codes raise InvalidInput."""
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidInput(value) from e


@dataclass(frozen=True)
class LimitMsg:
    """
    Take-profit limit order.

    source_token:
        Token deposited and eventually paid back.
    pool:
        Pool holding source_token and the target token.
    take_profit_pct:
        Gain over the average buy price at which the position is sold (scaled by M).
    """
    source_token: Token
    pool: str
    take_profit_pct: int
    order_type: ClassVar[OrderType] = OrderType.LIMIT


@dataclass(frozen=True)
class SmartMsg:
    """
    DCA ("smart") order.

    The initial buy spends initial_buy_amount. Then up to num_steps further
    tranches are bought each time the price drops below the next trigger price.
    Trigger k sits step_price_drop * step_price_multiplier**k (scaled by M)
    below the previous one; tranche k is step_order_size * step_size_multiplier**k.
    """
    source_token: Token
    pool: str
    take_profit_pct: int
    initial_buy_amount: int
    num_steps: int
    step_price_drop: int
    step_price_multiplier: int
    step_order_size: int
    step_size_multiplier: int
    order_type: ClassVar[OrderType] = OrderType.SMART


@dataclass(frozen=True)
class GridMsg:
    """Symmetric grid: num_pairs buy/sell levels spread over +/- price_range_pct around the entry price."""
    source_token: Token
    pool: str
    total_amount: int
    num_pairs: int
    price_range_pct: int
    order_type: ClassVar[OrderType] = OrderType.GRID


@dataclass
class LimitOrder:
    config: LimitMsg
    target_token: Token
    initial_source_amount: int
    source_amount: int
    target_amount: int
    avg_buy_price: int
    target_buy_price: int
    finished: bool = False
    order_type: ClassVar[OrderType] = OrderType.LIMIT


@dataclass
class SmartOrder:
    config: SmartMsg
    target_token: Token
    source_amount: int
    target_amount: int
    avg_buy_price: int
    target_buy_price: int
    trigger_prices: list[int] = field(default_factory=list)
    tranche_sizes: list[int] = field(default_factory=list)
    finished: bool = False
    progress_index: int = 0
    order_type: ClassVar[OrderType] = OrderType.SMART


@dataclass
class GridOrder:
    config: GridMsg
    target_token: Token
    buy_prices: list[int]
    sell_prices: list[int]
    step_size: int
    source_amount: int
    target_amount: int
    finished: bool = False
    buy_progress: int = 0
    sell_progress: int = 0
    order_type: ClassVar[OrderType] = OrderType.GRID
