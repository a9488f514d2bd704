"""One side of one instrument's book: FIFO queues per price tick."""

from __future__ import annotations

from collections import deque

from flowerexchange.types import ORDER_BOOK_TICK_CAPACITY, Order


class OrderBook:
    """Price levels indexed by tick, with the lowest and highest active tick tracked."""

    def __init__(self, max_ticks: int = ORDER_BOOK_TICK_CAPACITY) -> None:
        self._max_ticks = max_ticks
        self._levels: dict[int, deque[Order]] = {}
        self._mask = 0
        self._best_first = -1
        self._best_last = -1

    def add_order(self, tick: int, order: Order | None) -> None:
        """Append an order to the back of its price level; None is ignored."""
        if order is None:
            return
        self._check_tick(tick)
        level = self._levels.get(tick)
        if level is not None:
            level.append(order)
            return
        self._levels[tick] = deque((order,))
        self._mask |= 1 << tick
        if self._best_first < 0 or tick < self._best_first:
            self._best_first = tick
        if self._best_last < 0 or tick > self._best_last:
            self._best_last = tick

    def peek_order(self, tick: int) -> Order | None:
        """Return the oldest order at a level without removing it."""
        self._check_tick(tick)
        level = self._levels.get(tick)
        return level[0] if level else None

    def pop_order(self, tick: int) -> Order | None:
        """Remove and return the oldest order at a level, or None if it is empty."""
        self._check_tick(tick)
        level = self._levels.get(tick)
        if not level:
            return None
        head = level.popleft()
        if not level:
            del self._levels[tick]
            self._mask &= ~(1 << tick)
            if self._best_first == tick:
                self._best_first = self._next_above(tick)
            if self._best_last == tick:
                self._best_last = self._prev_below(tick)
        return head

    def find_first(self) -> int:
        """Lowest active tick, or -1 if the book is empty."""
        return self._best_first

    def find_last(self) -> int:
        """Highest active tick, or -1 if the book is empty."""
        return self._best_last

    def _check_tick(self, tick: int) -> None:
        if not 0 <= tick < self._max_ticks:
            raise IndexError(f"tick {tick} outside book range 0..{self._max_ticks - 1}")

    def _next_above(self, tick: int) -> int:
        above = self._mask >> (tick + 1)
        if not above:
            return -1
        return tick + 1 + (above & -above).bit_length() - 1

    def _prev_below(self, tick: int) -> int:
        return (self._mask & ((1 << tick) - 1)).bit_length() - 1