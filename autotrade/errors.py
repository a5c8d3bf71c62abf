"""autotrade.errors

Error taxonomy.

Every failure raised by the service derives from OrderError. Any error raised
while a start/sync/stop call is in flight aborts that call: the ledger rolls
back and no instructions are returned.
"""


class OrderError(Exception):
    """Base class for all service errors.

    Parameters
    ----------
    value:
        Optional diagnostic value (for example an offending amount). It is
        kept on the instance and included verbatim in the message.
    """
    message = "Order error"

    def __init__(self, value=None):
        self.value = value
        if value is None:
            super().__init__(self.message)
        else:
            super().__init__(f"{self.message}: {value}")


class Unauthorized(OrderError):
    message = "Unauthorized"


class Disabled(OrderError):
    message = "Disabled"


class MaxOrderCountExceed(OrderError):
    message = "Max Order Count Exceed"


class InsufficientAmountForSmartOrder(OrderError):
    message = "Insufficient amount for Smart order"


class InsufficientAmountForGridOrder(OrderError):
    message = "Insufficient amount for Grid order"


class OrderNotExist(OrderError):
    message = "OrderNotExist"


class AlreadyFinishedOrder(OrderError):
    message = "AlreadyFinishedOrder"


class EmptyBalance(OrderError):
    message = "Send some coins to create an order"


class TokenTypeMismatch(OrderError):
    message = "Token type mismatch"


class PoolAndTokenMismatch(OrderError):
    message = "The pool does not contain the input token"


class InvalidInput(OrderError):
    message = "InvalidInput"


class VenueError(OrderError):
    """Failure reported by the swap venue (unknown pool, empty reserves, zero output)."""
    message = "Swap venue error"


class EmptySwap(VenueError):
    """The venue quotes nothing for a non-zero input (amount too small for the pool)."""
    message = "Swap returns nothing"
