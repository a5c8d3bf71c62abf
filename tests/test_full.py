import unittest
from autotrade import AmmVenue, OrderService, OrderType, LimitMsg, SmartMsg, GridMsg, Deposit, Coin, Token

JUNO = Token.native('ujuno')
ATOM = Token.native('uatom')


class TestEndToEnd(unittest.TestCase):
    """Orders run against a constant-product pool; the service's balances must match the ledger at every step."""

    def setUp(self):
        self.venue = AmmVenue()
        self.venue.add_pool('juno-atom', JUNO, ATOM, 1_000_000_000, 500_000_000)
        self.service = OrderService(self.venue, owner='admin')

    def submit(self, account, message, amount):
        self.venue.set_balance(JUNO, self.service.address, self.venue.balance_of(JUNO, self.service.address) + amount)
        response = self.service.start(account, message, Deposit.native(Coin(JUNO, amount)))
        self.venue.execute(response.instructions, sender=self.service.address)
        return response

    def apply(self, response):
        self.venue.execute(response.instructions, sender=self.service.address)
        return response

    def whale_swap(self, token, amount):
        self.venue.set_balance(token, 'whale', amount)
        _, _, swap = self.venue.quote_and_build_swap('juno-atom', token, amount)
        self.venue.execute(swap, sender='whale')

    def assert_conserved(self):
        active = []
        for order_type, account in ((OrderType.LIMIT, 'alice'), (OrderType.SMART, 'bob'), (OrderType.GRID, 'carol')):
            active.extend(self.service.orders(order_type, account))
        self.assertEqual(self.venue.balance_of(JUNO, self.service.address), sum(o.source_amount for o in active))
        self.assertEqual(self.venue.balance_of(ATOM, self.service.address), sum(o.target_amount for o in active))

    def start_all(self):
        self.submit('alice', LimitMsg(JUNO, 'juno-atom', 500), 10_000)
        self.submit('bob', SmartMsg(JUNO, 'juno-atom', 500, 1_000, 2, 200, 2, 1_000, 2), 10_000)
        self.submit('carol', GridMsg(JUNO, 'juno-atom', 20_000, 4, 800), 20_000)

    def test_price_drop_then_stop(self):
        self.start_all()
        self.assertEqual(self.venue.balance_of(JUNO, 'bob'), 3_000)
        self.assert_conserved()

        self.whale_swap(ATOM, 250_000_000)
        for order_type, account in ((OrderType.LIMIT, 'alice'), (OrderType.SMART, 'bob'), (OrderType.GRID, 'carol')):
            self.apply(self.service.sync('admin', order_type, 0, account=account))
        self.assertEqual(self.service.order(OrderType.SMART, 'bob', 0).progress_index, 2)
        self.assertEqual(self.service.order(OrderType.GRID, 'carol', 0).buy_progress, 4)
        self.assertFalse(self.service.order(OrderType.LIMIT, 'alice', 0).finished)
        self.assert_conserved()

        for order_type, account in ((OrderType.LIMIT, 'alice'), (OrderType.SMART, 'bob'), (OrderType.GRID, 'carol')):
            response = self.apply(self.service.stop(account, order_type, 0))
            payout = self.service.order(order_type, account, 0).source_amount
            self.assertEqual(response.instructions[-1].amount, payout)
            self.assertEqual(self.venue.balance_of(JUNO, account), payout + (3_000 if account == 'bob' else 0))
        self.assertEqual(self.venue.balance_of(JUNO, self.service.address), 0)
        self.assertEqual(self.venue.balance_of(ATOM, self.service.address), 0)

    def test_limit_take_profit(self):
        self.start_all()
        self.whale_swap(JUNO, 200_000_000)
        response = self.apply(self.service.sync('alice', OrderType.LIMIT, 0))
        self.assertEqual(response.action, 'sync_limit_success')
        order = self.service.order(OrderType.LIMIT, 'alice', 0)
        self.assertGreater(order.source_amount, 10_000)
        self.assertEqual(self.venue.balance_of(JUNO, 'alice'), order.source_amount)
        self.assert_conserved()

    def test_dust_sized_steps_can_be_stopped(self):
        # at the starting reserves a step of 2 and a tranche of 1 both quote nothing
        self.submit('carol', GridMsg(JUNO, 'juno-atom', 1_000, 250, 800), 1_000)
        self.submit('bob', SmartMsg(JUNO, 'juno-atom', 500, 1_000, 1, 200, 1, 1, 1), 2_000)
        self.assertEqual(self.service.order(OrderType.GRID, 'carol', 0).step_size, 2)
        self.assert_conserved()
        self.whale_swap(ATOM, 250_000_000)
        self.apply(self.service.sync('admin', OrderType.GRID, 0, account='carol'))
        self.apply(self.service.sync('admin', OrderType.SMART, 0, account='bob'))
        self.assert_conserved()
        for order_type, account in ((OrderType.GRID, 'carol'), (OrderType.SMART, 'bob')):
            response = self.apply(self.service.stop(account, order_type, 0))
            self.assertTrue(response.action.endswith('_success'))
            self.assertEqual(self.venue.balance_of(JUNO, account), self.service.order(order_type, account, 0).source_amount)
        self.assertEqual(self.venue.balance_of(JUNO, self.service.address), 0)
        self.assertEqual(self.venue.balance_of(ATOM, self.service.address), 0)

if __name__ == "__main__":
    unittest.main()
