"""autotrade.ledger

Order ledger.

Storage layout
--------------
- OrderIndex keyed by (order_type, account): the active ids in insertion order
  plus the next id to hand out. Ids are never reused.
- Order records keyed by (order_type, account, id). Records are never deleted;
  finished orders stay readable.

Atomicity
---------
Engines wrap every call in `with ledger.atomic():`. Inside the block every
write (register, retire, save) first journals the previous value of the key it
touches; if the block raises, the journal is replayed backwards, so a failed
call leaves no trace. Only touched keys are copied, never the whole history.
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field

from .errors import MaxOrderCountExceed, OrderNotExist
from .order import OrderType

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class OrderIndex:
    active_ids: list[int] = field(default_factory=list)
    next_id: int = 0


class OrderLedger:
    def __init__(self, max_order: int = 10):
        """
        Parameters
        ----------
        max_order:
            Maximum number of simultaneously active orders per (account, order type).
        """
        self.max_order = max_order
        self._indexes: dict[tuple[OrderType, str], OrderIndex] = {}
        self._records: dict[tuple[OrderType, str, int], object] = {}
        self._journal: list | None = None

    @contextmanager
    def atomic(self):
        outermost = self._journal is None
        if outermost:
            self._journal = []
        mark = len(self._journal)
        try:
            yield self
        except BaseException:
            self._undo(mark)
            logger.debug("Ledger rolled back")
            raise
        finally:
            if outermost:
                self._journal = None

    def _remember(self, store: dict, key):
        if self._journal is not None:
            # indexes are mutated in place, records are only ever replaced
            previous = store.get(key, _MISSING)
            if isinstance(previous, OrderIndex):
                previous = copy.deepcopy(previous)
            self._journal.append((store, key, previous))

    def _undo(self, mark: int):
        while len(self._journal) > mark:
            store, key, previous = self._journal.pop()
            if previous is _MISSING:
                store.pop(key, None)
            else:
                store[key] = previous

    def index(self, account: str, order_type: OrderType) -> OrderIndex:
        """Return a copy of the account's index (empty if the account never opened an order of this type)."""
        idx = self._indexes.get((order_type, account))
        return copy.deepcopy(idx) if idx is not None else OrderIndex()

    def register(self, account: str, order_type: OrderType) -> int:
        self._remember(self._indexes, (order_type, account))
        idx = self._indexes.setdefault((order_type, account), OrderIndex())
        if len(idx.active_ids) >= self.max_order:
            raise MaxOrderCountExceed(len(idx.active_ids))
        order_id = idx.next_id
        idx.active_ids.append(order_id)
        idx.next_id += 1
        return order_id

    def retire(self, account: str, order_type: OrderType, order_id: int):
        # an id missing from the active list is an error, never a silent removal of another id
        idx = self._indexes.get((order_type, account))
        if idx is None or order_id not in idx.active_ids:
            raise OrderNotExist(order_id)
        self._remember(self._indexes, (order_type, account))
        idx.active_ids.remove(order_id)

    def is_active(self, account: str, order_type: OrderType, order_id: int) -> bool:
        idx = self._indexes.get((order_type, account))
        return idx is not None and order_id in idx.active_ids

    def save(self, account: str, order_type: OrderType, order_id: int, record):
        self._remember(self._records, (order_type, account, order_id))
        self._records[(order_type, account, order_id)] = copy.deepcopy(record)

    def load(self, account: str, order_type: OrderType, order_id: int):
        """Return a copy of the stored record. Mutations only persist through save()."""
        try:
            return copy.deepcopy(self._records[(order_type, account, order_id)])
        except KeyError as e:
            raise OrderNotExist(order_id) from e

    def exists(self, account: str, order_type: OrderType, order_id: int) -> bool:
        return (order_type, account, order_id) in self._records

    def accounts(self, order_type: OrderType) -> list[str]:
        """Accounts holding an index for this order type, ascending."""
        return sorted(acc for (t, acc) in self._indexes if t == order_type)

    def order_ids(self, account: str, order_type: OrderType) -> list[int]:
        """Every id ever created for the account (finished ones included), ascending."""
        return sorted(i for (t, acc, i) in self._records if t == order_type and acc == account)
