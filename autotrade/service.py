"""autotrade.service

Service facade.

OrderService wires one ledger, one venue and the three engines together and
adds the outer surface around them:
- owner / enabled administration,
- dispatch of start messages (native deposits and wrapped-token receive hook),
- sync / stop dispatch by order type,
- owner withdrawal of the service's token balances,
- queries over the ledger.

Initialization order
- SwapVenue
- ServiceConfig (optional)
- OrderService
"""

import logging
from dataclasses import dataclass

from .engine import Response
from .errors import Disabled, InvalidInput, Unauthorized
from .grid import GridOrderEngine
from .ledger import OrderLedger
from .limit import LimitOrderEngine
from .order import GridMsg, LimitMsg, OrderType, SmartMsg
from .smart import SmartOrderEngine
from .venue import Deposit, SwapVenue, Token

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """
    Static service limits.

    max_order:
        Active orders allowed per (account, order type).
    default_limit / max_limit:
        Page size bounds for order_accounts().
    """
    max_order: int = 10
    default_limit: int = 10
    max_limit: int = 30


class OrderService:
    def __init__(self, venue: SwapVenue, config: ServiceConfig | None = None, owner: str = "owner", address: str = "autotrade"):
        """
        Parameters
        ----------
        venue:
            Swap & balance collaborator shared by every engine.
        config:
            ServiceConfig; defaults are used when omitted.
        owner:
            Account allowed to administer the service and sync other accounts' orders.
        address:
            Account holding deposited funds (the sender of emitted instructions).
        """
        self.venue = venue
        self.config = config or ServiceConfig()
        self.owner = owner
        self.enabled = True
        self.address = address
        self.ledger = OrderLedger(max_order=self.config.max_order)
        self.limit = LimitOrderEngine(self.ledger, venue, self.check_owner)
        self.smart = SmartOrderEngine(self.ledger, venue, self.check_owner)
        self.grid = GridOrderEngine(self.ledger, venue, self.check_owner)

    def check_owner(self, caller: str):
        if caller != self.owner:
            logger.warning("%s is not the service owner", caller)
            raise Unauthorized(caller)

    def engine(self, order_type):
        match OrderType.parse(order_type):
            case OrderType.LIMIT:
                return self.limit
            case OrderType.SMART:
                return self.smart
            case OrderType.GRID:
                return self.grid

    # administration

    def update_owner(self, caller: str, owner: str) -> Response:
        self.check_owner(caller)
        self.owner = owner
        return Response(action="update_owner", attributes={"owner": owner})

    def update_enabled(self, caller: str, enabled: bool) -> Response:
        self.check_owner(caller)
        self.enabled = enabled
        return Response(action="update_enabled", attributes={"enabled": str(enabled).lower()})

    def withdraw(self, caller: str, token: Token) -> Response:
        self.check_owner(caller)
        amount = self.venue.balance_of(token, self.address)
        transfer = self.venue.build_transfer(token, amount, caller)
        return Response(action="withdraw", attributes={"amount": str(amount)}, instructions=[transfer])

    # orders

    def start(self, account: str, message, deposit: Deposit) -> Response:
        if not self.enabled:
            raise Disabled()
        match message:
            case LimitMsg():
                return self.limit.start(message, deposit, account)
            case SmartMsg():
                return self.smart.start(message, deposit, account)
            case GridMsg():
                return self.grid.start(message, deposit, account)
            case _:
                raise InvalidInput(type(message).__name__)

    def receive(self, token_contract: str, sender: str, amount: int, message) -> Response:
        """Wrapped-token deposit hook: `token_contract` forwarded `amount` sent by `sender`."""
        deposit = Deposit.from_wrapped(Token.wrapped(token_contract), amount)
        return self.start(sender, message, deposit)

    def sync(self, caller: str, order_type, order_id: int, account: str | None = None) -> Response:
        return self.engine(order_type).sync(caller, account, order_id, force_finish=False)

    def stop(self, caller: str, order_type, order_id: int) -> Response:
        return self.engine(order_type).stop(caller, order_id)

    # queries

    def query_config(self) -> dict:
        return {"owner": self.owner, "enabled": self.enabled}

    def order_accounts(self, order_type, start_after: str | None = None, limit: int | None = None) -> list[str]:
        """Accounts with orders of this type, ascending, starting after the `start_after` cursor."""
        limit = min(limit if limit is not None else self.config.default_limit, self.config.max_limit)
        accounts = self.ledger.accounts(OrderType.parse(order_type))
        if start_after is not None:
            accounts = [a for a in accounts if a > start_after]
        return accounts[:limit]

    def order_ids(self, order_type, account: str) -> list[int]:
        return list(self.ledger.index(account, OrderType.parse(order_type)).active_ids)

    def order(self, order_type, account: str, order_id: int):
        return self.ledger.load(account, OrderType.parse(order_type), order_id)

    def orders(self, order_type, account: str, include_finished: bool = False) -> list:
        order_type = OrderType.parse(order_type)
        if include_finished:
            ids = self.ledger.order_ids(account, order_type)
        else:
            ids = self.ledger.index(account, order_type).active_ids
        return [self.ledger.load(account, order_type, i) for i in ids]
