"""Price-time priority matching across per-instrument books."""

from __future__ import annotations

from typing import Callable, Sequence

from flowerexchange.mempool import MemPool
from flowerexchange.order_book import OrderBook
from flowerexchange.types import ExecStatus, ExecutionReport, Order, Side


class MatchingEngine:
    """Matches incoming orders against resting ones and emits execution reports.

    Books are indexed by instrument value. Fully filled orders are returned
    to the order pool; reports come from the report pool and are handed to
    the caller, who owns them from then on.
    """

    def __init__(
        self,
        order_pool: MemPool[Order],
        report_pool: MemPool[ExecutionReport],
        buy_books: Sequence[OrderBook],
        sell_books: Sequence[OrderBook],
    ) -> None:
        self._order_pool = order_pool
        self._report_pool = report_pool
        self._buy_books = buy_books
        self._sell_books = sell_books

    def process_order(
        self,
        incoming: Order,
        emit_report: Callable[[ExecutionReport], None],
        event_timestamp: str | None = None,
    ) -> None:
        """Match ``incoming``, rest any remainder and emit its reports in order."""
        idx = int(incoming.instrument)
        buying = incoming.side == Side.BUY
        opposite = self._sell_books[idx] if buying else self._buy_books[idx]
        timestamp = event_timestamp or ""
        matched_any = False

        while incoming.quantity > 0:
            best = opposite.find_first() if buying else opposite.find_last()
            if best < 0:
                break
            crosses = best <= incoming.price if buying else best >= incoming.price
            if not crosses:
                break

            resting = opposite.peek_order(best)
            if resting is None:
                break

            trade_qty = min(incoming.quantity, resting.quantity)
            incoming.quantity -= trade_qty
            resting.quantity -= trade_qty
            matched_any = True

            emit_report(
                self._report(incoming, best, trade_qty, _fill_status(incoming), timestamp)
            )
            emit_report(
                self._report(resting, best, trade_qty, _fill_status(resting), timestamp)
            )

            if resting.quantity == 0:
                opposite.pop_order(best)
                self._order_pool.deallocate(resting)

        if incoming.quantity > 0:
            own = self._buy_books[idx] if buying else self._sell_books[idx]
            own.add_order(incoming.price, incoming)
            if not matched_any:
                emit_report(
                    self._report(
                        incoming,
                        incoming.price,
                        incoming.quantity,
                        ExecStatus.NEW,
                        timestamp,
                    )
                )
        else:
            self._order_pool.deallocate(incoming)

    def _report(
        self,
        order: Order,
        price: int,
        quantity: int,
        status: ExecStatus,
        timestamp: str,
    ) -> ExecutionReport:
        return self._report_pool.allocate(
            order.oid,
            order.coid,
            order.instrument,
            order.side,
            price,
            quantity,
            status,
            "",
            timestamp,
        )


def _fill_status(order: Order) -> ExecStatus:
    return ExecStatus.FILL if order.quantity == 0 else ExecStatus.PFILL