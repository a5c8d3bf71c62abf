import logging

from autotrade import AmmVenue, OrderService, OrderAnalytics, Token, Coin, Deposit
from autotrade import LimitMsg, SmartMsg, GridMsg, OrderType

# follow the steps outlined in the autotrade module description.
# the venue plays both the AMM pool and the token balance sheet.

JUNO = Token.native("ujuno")
ATOM = Token.native("uatom")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Create venue with one pool
    venue = AmmVenue()
    venue.add_pool("juno-atom", JUNO, ATOM, reserve_a=10_000_000, reserve_b=5_000_000)

    # Create service
    service = OrderService(venue=venue, owner="admin")

    def submit(account, message, amount):
        # funds arrive with the message
        venue.set_balance(JUNO, service.address, venue.balance_of(JUNO, service.address) + amount)
        response = service.start(account, message, Deposit.native(Coin(JUNO, amount)))
        venue.execute(response.instructions, sender=service.address)
        return response

    submit("alice", LimitMsg(source_token=JUNO, pool="juno-atom", take_profit_pct=500), 10_000)
    submit("bob", SmartMsg(source_token=JUNO, pool="juno-atom", take_profit_pct=500, initial_buy_amount=1_000,
                           num_steps=2, step_price_drop=200, step_price_multiplier=2, step_order_size=1_000,
                           step_size_multiplier=2), 10_000)
    submit("carol", GridMsg(source_token=JUNO, pool="juno-atom", total_amount=20_000, num_pairs=4, price_range_pct=800), 20_000)

    # someone dumps ATOM into the pool: the target token gets cheaper
    venue.set_balance(ATOM, "whale", 600_000)
    _, _, dump = venue.quote_and_build_swap("juno-atom", ATOM, 600_000)
    venue.execute(dump, sender="whale")

    for account, order_type in (("alice", OrderType.LIMIT), ("bob", OrderType.SMART), ("carol", OrderType.GRID)):
        response = service.sync("admin", order_type, 0, account=account)
        venue.execute(response.instructions, sender=service.address)
        print(f"{account}: {response.action}")

    response = service.stop("carol", OrderType.GRID, 0)
    venue.execute(response.instructions, sender=service.address)
    print(f"carol: {response.action}, balance {venue.balance_of(JUNO, 'carol')}")

    analytics = OrderAnalytics()
    print(analytics.orders_frame(service, OrderType.GRID, "carol"))
    print(analytics.summarize(service, OrderType.SMART, "bob"))
    analytics.plot_ladder(service.order(OrderType.SMART, "bob", 0), show=True)


if __name__ == "__main__":
    main()
