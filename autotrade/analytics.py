import pandas as pd
import matplotlib.pyplot as plt
import numpy as np

from .order import GridOrder, LimitOrder, OrderType, SmartOrder


class OrderAnalytics:
    def __init__(self):
        pass

    def order_row(self, order_id: int, order) -> dict:
        """
        Flatten an order record into a dictionary.

        Common keys: id, order_type, source_token, target_token, pool,
        source_amount, target_amount, finished, progress, steps.
        Prices are kept as scaled integers.
        """
        row = {
            "id": order_id,
            "order_type": order.order_type.name,
            "source_token": str(order.config.source_token),
            "target_token": str(order.target_token),
            "pool": order.config.pool,
            "source_amount": order.source_amount,
            "target_amount": order.target_amount,
            "finished": order.finished,
        }
        if isinstance(order, LimitOrder):
            row.update(avg_buy_price=order.avg_buy_price, target_buy_price=order.target_buy_price, progress=int(order.finished), steps=1)
        elif isinstance(order, SmartOrder):
            row.update(avg_buy_price=order.avg_buy_price, target_buy_price=order.target_buy_price, progress=order.progress_index, steps=order.config.num_steps)
        elif isinstance(order, GridOrder):
            row.update(buy_progress=order.buy_progress, sell_progress=order.sell_progress,
                       progress=order.buy_progress + order.sell_progress, steps=2 * order.config.num_pairs)
        return row

    def orders_frame(self, service, order_type, account: str, include_finished: bool = True) -> pd.DataFrame:
        """One row per order of `account`, finished orders included by default."""
        order_type = OrderType.parse(order_type)
        if include_finished:
            ids = service.ledger.order_ids(account, order_type)
        else:
            ids = service.order_ids(order_type, account)
        rows = [self.order_row(i, service.order(order_type, account, i)) for i in ids]
        return pd.DataFrame(rows)

    def summarize(self, service, order_type, account: str) -> dict:
        """
        Aggregate statistics over an account's orders of one type.

        Returns
        -------
        dict with TotalOrders, ActiveOrders, FinishedOrders, HeldSource,
        HeldTarget, SettledSource (payouts of finished orders) and
        MeanProgress (fraction of ladder steps consumed, nan without steps).
        """
        frame = self.orders_frame(service, order_type, account)
        if frame.empty:
            return {"TotalOrders": 0, "ActiveOrders": 0, "FinishedOrders": 0, "HeldSource": 0,
                    "HeldTarget": 0, "SettledSource": 0, "MeanProgress": float("nan")}

        finished = frame["finished"].to_numpy(dtype=bool)
        source = frame["source_amount"].to_numpy(dtype=object)
        target = frame["target_amount"].to_numpy(dtype=object)
        steps = frame["steps"].to_numpy(dtype=float)
        progress = frame["progress"].to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            ratios = np.where(steps > 0, progress / steps, np.nan)

        return {
            "TotalOrders": int(len(frame)),
            "ActiveOrders": int((~finished).sum()),
            "FinishedOrders": int(finished.sum()),
            "HeldSource": int(sum(source[~finished])),
            "HeldTarget": int(sum(target[~finished])),
            "SettledSource": int(sum(source[finished])),
            "MeanProgress": float(np.nanmean(ratios)) if np.any(~np.isnan(ratios)) else float("nan"),
        }

    def plot_ladder(self, order, show: bool = True):
        """
        Plot an order's price levels (scaled by D) around its entry price.

        Grid orders show buy and sell ladders with filled levels drawn solid;
        smart orders show the DCA trigger ladder; limit orders show entry and
        take-profit only. Returns the matplotlib Figure.
        """
        fig, ax = plt.subplots(figsize=(8, 5))
        if isinstance(order, GridOrder):
            # the ladders are symmetric around the entry price
            entry = (order.buy_prices[0] + order.sell_prices[0]) / 2
            buys = np.array(order.buy_prices, dtype=float)
            sells = np.array(order.sell_prices, dtype=float)
            for i, price in enumerate(buys):
                ax.axhline(price, color="tab:green", linestyle="-" if i < order.buy_progress else "--", alpha=0.8)
            for i, price in enumerate(sells):
                ax.axhline(price, color="tab:red", linestyle="-" if i < order.sell_progress else "--", alpha=0.8)
            ax.axhline(entry, color="tab:blue", label="Entry")
            ax.set_title(f"Grid Ladder ({order.buy_progress} buys / {order.sell_progress} sells filled)")
        elif isinstance(order, SmartOrder):
            triggers = np.array(order.trigger_prices, dtype=float)
            sizes = np.array(order.tranche_sizes, dtype=float)
            ax.axhline(order.avg_buy_price, color="tab:blue", label="Avg Buy Price")
            ax.axhline(order.target_buy_price, color="tab:purple", label="Take Profit")
            if len(triggers) and sizes.max() > 0:
                ax.scatter(np.arange(1, len(triggers) + 1), triggers, s=20 + 80 * sizes / sizes.max(),
                           c=["tab:green" if i < order.progress_index else "tab:gray" for i in range(len(triggers))])
            ax.set_xlabel("DCA step")
            ax.set_title(f"DCA Ladder ({order.progress_index}/{order.config.num_steps} steps filled)")
        else:
            ax.axhline(order.avg_buy_price, color="tab:blue", label="Avg Buy Price")
            ax.axhline(order.target_buy_price, color="tab:purple", label="Take Profit")
            ax.set_title("Limit Order")
        ax.set_ylabel("Price (scaled)")
        ax.legend()
        fig.tight_layout()
        if show:
            plt.show()
        return fig
