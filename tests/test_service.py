import unittest
from autotrade import (
    OrderService, ServiceConfig, AmmVenue, OrderType, LimitMsg, SmartMsg, GridMsg, Deposit, Coin, Token,
    LimitOrder, SmartOrder, GridOrder, TransferInstruction,
)
from autotrade.errors import Disabled, InvalidInput, OrderNotExist, Unauthorized
from venue_stubs import FixedRateVenue, JUNO, ATOM


def smart_msg(source=JUNO):
    return SmartMsg(source_token=source, pool='pool', take_profit_pct=1000, initial_buy_amount=100, num_steps=1,
                    step_price_drop=500, step_price_multiplier=1, step_order_size=100, step_size_multiplier=1)


class TestOrderService(unittest.TestCase):
    def setUp(self):
        self.venue = FixedRateVenue()
        self.venue.set_rate(JUNO, 1, 2)
        self.venue.set_rate(ATOM, 2, 1)
        self.service = OrderService(self.venue, owner='admin')

    def deposit(self, amount=1000):
        return Deposit.native(Coin(JUNO, amount))

    def test_dispatch_by_message(self):
        self.service.start('alice', LimitMsg(JUNO, 'pool', 1000), self.deposit())
        self.service.start('alice', smart_msg(), self.deposit())
        self.service.start('alice', GridMsg(JUNO, 'pool', 1000, 2, 400), self.deposit())
        self.assertIsInstance(self.service.order(OrderType.LIMIT, 'alice', 0), LimitOrder)
        self.assertIsInstance(self.service.order(1, 'alice', 0), SmartOrder)
        self.assertIsInstance(self.service.order(2, 'alice', 0), GridOrder)
        for order_type in OrderType:
            self.assertEqual(self.service.order_ids(order_type, 'alice'), [0])
            self.assertEqual(self.service.order_ids(order_type, 'bob'), [])
        with self.assertRaises(InvalidInput):
            self.service.start('alice', object(), self.deposit())
        with self.assertRaises(InvalidInput):
            self.service.sync('alice', 7, 0)

    def test_disabled_blocks_start_only(self):
        self.service.start('alice', LimitMsg(JUNO, 'pool', 1000), self.deposit())
        with self.assertRaises(Unauthorized):
            self.service.update_enabled('alice', False)
        self.service.update_enabled('admin', False)
        self.assertEqual(self.service.query_config(), {'owner': 'admin', 'enabled': False})
        with self.assertRaises(Disabled):
            self.service.start('alice', LimitMsg(JUNO, 'pool', 1000), self.deposit())
        self.assertEqual(self.service.stop('alice', OrderType.LIMIT, 0).action, 'sync_limit_success')

    def test_third_party_sync(self):
        self.service.start('alice', GridMsg(JUNO, 'pool', 1000, 2, 400), self.deposit())
        with self.assertRaises(Unauthorized):
            self.service.sync('bob', OrderType.GRID, 0, account='alice')
        self.assertEqual(self.service.sync('admin', OrderType.GRID, 0, account='alice').action, 'sync_grid_waiting')
        self.service.update_owner('admin', 'bob')
        self.assertEqual(self.service.sync('bob', OrderType.GRID, 0, account='alice').attributes['sender'], 'alice')
        with self.assertRaises(Unauthorized):
            self.service.sync('admin', OrderType.GRID, 0, account='alice')
        with self.assertRaises(OrderNotExist):
            self.service.sync('alice', OrderType.GRID, 5)

    def test_receive_wrapped_deposit(self):
        cw = Token.wrapped('juno1token')
        venue = FixedRateVenue(source=cw, target=ATOM)
        service = OrderService(venue)
        response = service.receive('juno1token', 'alice', 1000, LimitMsg(cw, 'pool', 1000))
        self.assertEqual(response.attributes['address'], 'alice')
        self.assertEqual(service.order(OrderType.LIMIT, 'alice', 0).initial_source_amount, 1000)

    def test_order_accounts_pagination(self):
        service = OrderService(self.venue, ServiceConfig(max_order=1))
        accounts = [f'acc{i:02d}' for i in range(35)]
        for account in reversed(accounts):
            service.start(account, LimitMsg(JUNO, 'pool', 1000), self.deposit())
        self.assertEqual(service.order_accounts(OrderType.LIMIT), accounts[:10])
        self.assertEqual(service.order_accounts(OrderType.LIMIT, limit=50), accounts[:30])
        self.assertEqual(service.order_accounts(OrderType.LIMIT, start_after='acc29', limit=10), accounts[30:])
        self.assertEqual(service.order_accounts(OrderType.GRID), [])

    def test_orders_history(self):
        for _ in range(2):
            self.service.start('alice', LimitMsg(JUNO, 'pool', 1000), self.deposit())
        self.service.stop('alice', OrderType.LIMIT, 0)
        self.assertEqual(len(self.service.orders(OrderType.LIMIT, 'alice')), 1)
        history = self.service.orders(OrderType.LIMIT, 'alice', include_finished=True)
        self.assertEqual([o.finished for o in history], [True, False])
        # finished records stay readable
        self.assertTrue(self.service.order(OrderType.LIMIT, 'alice', 0).finished)

    def test_withdraw(self):
        venue = AmmVenue()
        venue.set_balance(JUNO, 'autotrade', 42)
        service = OrderService(venue, owner='admin')
        with self.assertRaises(Unauthorized):
            service.withdraw('alice', JUNO)
        response = service.withdraw('admin', JUNO)
        self.assertEqual(response.instructions, [TransferInstruction(JUNO, 42, 'admin')])
        venue.execute(response.instructions, sender=service.address)
        self.assertEqual(venue.balance_of(JUNO, 'admin'), 42)

if __name__ == "__main__":
    unittest.main()
