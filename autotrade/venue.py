"""autotrade.venue

Swap & balance collaborator.

The order engines never move funds themselves. They ask a SwapVenue to:
- check that a token belongs to a pool,
- pull the amount of a token out of a deposit,
- quote a swap and hand back the instruction(s) that would perform it,
- build a transfer instruction.

Quoting is pure: the engine decides whether the returned instructions are kept
(and emitted in the Response) or discarded. Emitted instructions are applied
later by whoever owns the funds, e.g. AmmVenue.execute().

Fixed-point math
----------------
Prices are integers scaled by decimal_scale() (D) and percentages are integers
scaled by percent_scale() (M). With M = 10000, a 10% take profit is 1000.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

from .errors import EmptyBalance, EmptySwap, InvalidInput, PoolAndTokenMismatch, TokenTypeMismatch, VenueError

logger = logging.getLogger(__name__)

DECIMAL_SCALE = 10 ** 6
PERCENT_SCALE = 10 ** 4


@dataclass(frozen=True, order=True)
class Token:
    """Asset identifier: a native denom or the address of a wrapped (cw20 style) token."""
    kind: Literal["native", "wrapped"]
    id: str

    @classmethod
    def native(cls, denom: str) -> "Token":
        return cls("native", denom)

    @classmethod
    def wrapped(cls, address: str) -> "Token":
        return cls("wrapped", address)

    def __str__(self):
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class Coin:
    token: Token
    amount: int


@dataclass
class Deposit:
    """
    Funds attached to a start call.

    A deposit is either a list of native coins (sent alongside the message) or a
    single wrapped-token coin (sent through the token contract's receive hook).
    """
    coins: list[Coin] = field(default_factory=list)
    wrapped: bool = False

    @classmethod
    def native(cls, *coins: Coin) -> "Deposit":
        return cls(coins=list(coins), wrapped=False)

    @classmethod
    def from_wrapped(cls, token: Token, amount: int) -> "Deposit":
        return cls(coins=[Coin(token, amount)], wrapped=True)

    def is_empty(self) -> bool:
        return all(c.amount == 0 for c in self.coins)


@dataclass(frozen=True)
class SwapInstruction:
    pool: str
    input_token: Token
    input_amount: int
    output_token: Token
    expected_output: int


@dataclass(frozen=True)
class TransferInstruction:
    token: Token
    amount: int
    recipient: str


class SwapVenue:
    """
    Interface consumed by the order engines.

    Subclass and implement every method. balance_of() is only needed by the
    service's withdraw operation.
    """

    def validate_token_in_pool(self, token: Token, pool: str) -> None:
        """Raise PoolAndTokenMismatch if `token` is not one of the pool's assets."""
        raise NotImplementedError("validate_token_in_pool must be implemented by subclass.")

    def extract_amount(self, deposit: Deposit, token: Token) -> int:
        """Return the amount of `token` carried by `deposit`."""
        raise NotImplementedError("extract_amount must be implemented by subclass.")

    def quote_and_build_swap(self, pool: str, input_token: Token, input_amount: int) -> tuple[int, Token, list]:
        """
        Return (output_amount, output_token, instructions) for swapping `input_amount` of `input_token`.

        A non-zero input that buys nothing may either quote 0 or raise EmptySwap;
        engines treat both as a step that cannot trade.
        """
        raise NotImplementedError("quote_and_build_swap must be implemented by subclass.")

    def build_transfer(self, token: Token, amount: int, recipient: str) -> TransferInstruction:
        return TransferInstruction(token=token, amount=amount, recipient=recipient)

    def balance_of(self, token: Token, holder: str) -> int:
        raise NotImplementedError("balance_of must be implemented by subclass.")

    def decimal_scale(self) -> int:
        return DECIMAL_SCALE

    def percent_scale(self) -> int:
        return PERCENT_SCALE


def extract_deposit_amount(deposit: Deposit, token: Token) -> int:
    """
    Shared deposit matching rules.

    - wrapped deposit vs native token (or the reverse): TokenTypeMismatch
    - wrapped deposit of a different token contract: InvalidInput
    - native deposit without the denom (or with zero of it): EmptyBalance
    """
    if deposit.wrapped != (token.kind == "wrapped"):
        raise TokenTypeMismatch(str(token))
    if deposit.wrapped:
        coin = deposit.coins[0] if deposit.coins else None
        if coin is None or coin.token != token:
            raise InvalidInput(str(token))
        if coin.amount == 0:
            raise EmptyBalance()
        return coin.amount
    amount = sum(c.amount for c in deposit.coins if c.token == token)
    if amount == 0:
        raise EmptyBalance(str(token))
    return amount


@dataclass
class AmmPool:
    """Two-asset constant-product pool (x * y = k). fee_bps is charged on the input."""
    token_a: Token
    token_b: Token
    reserve_a: int
    reserve_b: int
    fee_bps: int = 30

    def other(self, token: Token) -> Token:
        if token == self.token_a:
            return self.token_b
        if token == self.token_b:
            return self.token_a
        raise PoolAndTokenMismatch(str(token))

    def reserves_for(self, input_token: Token) -> tuple[int, int]:
        if input_token == self.token_a:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def get_output(self, input_token: Token, input_amount: int) -> int:
        reserve_in, reserve_out = self.reserves_for(input_token)
        in_after_fee = input_amount * (10000 - self.fee_bps) // 10000
        return in_after_fee * reserve_out // (reserve_in + in_after_fee)

    def apply(self, input_token: Token, input_amount: int, output_amount: int):
        if input_token == self.token_a:
            self.reserve_a += input_amount
            self.reserve_b -= output_amount
        else:
            self.reserve_b += input_amount
            self.reserve_a -= output_amount


class AmmVenue(SwapVenue):
    """
    In-memory venue made of constant-product pools plus a token balance sheet.

    Quotes are computed against the current reserves and never change them.
    execute() applies emitted instructions on behalf of `sender`: swaps move
    funds between the sender and the pool at the quoted amounts, transfers move
    funds from the sender to the recipient.
    """

    def __init__(self, decimal_scale: int = DECIMAL_SCALE, percent_scale: int = PERCENT_SCALE):
        self._decimal_scale = decimal_scale
        self._percent_scale = percent_scale
        self.pools: dict[str, AmmPool] = {}
        self.balances: dict[tuple[Token, str], int] = {}

    def add_pool(self, pool: str, token_a: Token, token_b: Token, reserve_a: int, reserve_b: int, fee_bps: int = 30) -> AmmPool:
        self.pools[pool] = AmmPool(token_a, token_b, reserve_a, reserve_b, fee_bps)
        return self.pools[pool]

    def _pool(self, pool: str) -> AmmPool:
        try:
            return self.pools[pool]
        except KeyError as e:
            raise VenueError(f"unknown pool {pool}") from e

    def validate_token_in_pool(self, token: Token, pool: str) -> None:
        self._pool(pool).other(token)

    def extract_amount(self, deposit: Deposit, token: Token) -> int:
        return extract_deposit_amount(deposit, token)

    def quote_and_build_swap(self, pool: str, input_token: Token, input_amount: int) -> tuple[int, Token, list]:
        amm = self._pool(pool)
        output_token = amm.other(input_token)
        if input_amount == 0:
            return 0, output_token, []
        output_amount = amm.get_output(input_token, input_amount)
        if output_amount == 0:
            raise EmptySwap(f"{input_amount} {input_token} via {pool}")
        instruction = SwapInstruction(pool=pool, input_token=input_token, input_amount=input_amount,
                                      output_token=output_token, expected_output=output_amount)
        return output_amount, output_token, [instruction]

    def balance_of(self, token: Token, holder: str) -> int:
        return self.balances.get((token, holder), 0)

    def set_balance(self, token: Token, holder: str, amount: int):
        self.balances[(token, holder)] = amount

    def _move(self, token: Token, holder: str, delta: int):
        balance = self.balance_of(token, holder) + delta
        if balance < 0:
            raise VenueError(f"{holder} cannot cover {-delta} {token}")
        self.balances[(token, holder)] = balance

    def execute(self, instructions: list, sender: str):
        """
        Apply instructions in order on behalf of `sender`, all or nothing.

        Swaps fill at their quoted output, so the amounts an engine recorded are
        exactly the amounts that move. The fill is not re-priced: a Response must
        be executed before anything else trades on its pools, otherwise stale
        quotes fill at their old price and the pool drifts off x * y = k.
        A swap the pool cannot pay out raises VenueError. If any instruction
        fails, balances and pool reserves are restored to their state before the call.
        """
        balances = dict(self.balances)
        reserves = {name: (amm.reserve_a, amm.reserve_b) for name, amm in self.pools.items()}
        try:
            for ins in instructions:
                self._apply(ins, sender)
        except BaseException:
            self.balances = balances
            for name, (reserve_a, reserve_b) in reserves.items():
                self.pools[name].reserve_a = reserve_a
                self.pools[name].reserve_b = reserve_b
            logger.debug("execute for %s rolled back", sender)
            raise

    def _apply(self, ins, sender: str):
        if isinstance(ins, SwapInstruction):
            amm = self._pool(ins.pool)
            output_amount = ins.expected_output
            if output_amount >= amm.reserves_for(ins.input_token)[1]:
                raise VenueError(f"pool {ins.pool} cannot pay {output_amount} {ins.output_token}")
            self._move(ins.input_token, sender, -ins.input_amount)
            amm.apply(ins.input_token, ins.input_amount, output_amount)
            self._move(ins.output_token, sender, output_amount)
            logger.debug("swap %d %s -> %d %s via %s", ins.input_amount, ins.input_token, output_amount, ins.output_token, ins.pool)
        elif isinstance(ins, TransferInstruction):
            self._move(ins.token, sender, -ins.amount)
            self._move(ins.token, ins.recipient, ins.amount)
            logger.debug("transfer %d %s to %s", ins.amount, ins.token, ins.recipient)
        else:
            raise TypeError(f"Unsupported instruction {ins!r}")
