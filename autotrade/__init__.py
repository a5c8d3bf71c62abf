"""
The autotrade module provides an automated trading service that converts a deposited
asset into a second asset under one of three strategies: take-profit limit orders,
dollar-cost-averaging ("smart") orders and symmetric grid orders.

Initalization Order
- SwapVenue (e.g. AmmVenue)
- OrderService

After initalization, use service.start() to open orders, service.sync() to advance them
and service.stop() to settle them. Apply each Response's instructions through the venue.

"""

from .service import OrderService, ServiceConfig
from .ledger import OrderLedger, OrderIndex
from .engine import OrderEngine, Response
from .limit import LimitOrderEngine
from .smart import SmartOrderEngine
from .grid import GridOrderEngine
from .order import OrderType, LimitMsg, SmartMsg, GridMsg, LimitOrder, SmartOrder, GridOrder
from .venue import SwapVenue, AmmVenue, Token, Coin, Deposit, SwapInstruction, TransferInstruction
from .analytics import OrderAnalytics
