"""Command loop that turns order CSV files into execution report CSV files."""

from __future__ import annotations

import argparse
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, TextIO

from flowerexchange.csv_reader import read_csv_rows
from flowerexchange.matching_engine import MatchingEngine
from flowerexchange.mempool import MemPool
from flowerexchange.order_book import OrderBook
from flowerexchange.timestamp_cache import TimestampCache
from flowerexchange.types import (
    ORDER_BOOK_TICK_CAPACITY,
    ORDER_POOL_INITIAL_CAPACITY,
    REPORT_POOL_INITIAL_CAPACITY,
    ExecStatus,
    ExecutionReport,
    InstrumentType,
    Order,
    Side,
    double_to_ticks,
    exec_status_to_string,
    format_price,
    format_ticks,
    instrument_to_string,
    parse_double,
    parse_instrument,
    parse_int,
)
from flowerexchange.validator import validate_order

OUTPUT_DIR = "output"

REPORT_HEADER = (
    "Order ID,Client Order Id,Instrument,Side,Exec "
    "Status,Quantity,Price,Reason,Timestamp\n"
)

_COID_LIMIT = 63
_INSTRUMENT_LIMIT = 31
_FILE_ENCODING = "utf-8"
_FILE_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class InboundOrder:
    """One parsed order line from an input file."""

    coid: str
    instrument: str
    side: int
    quantity: int
    price: float


def derive_output_path(input_path: str) -> str:
    """Return the report path for an input file: output/<stem>_reports.csv."""
    stem = Path(input_path).stem
    return os.path.join(OUTPUT_DIR, f"{stem}_reports.csv")


def format_report_row(
    report: ExecutionReport, instrument_text: str, side: int, price_text: str
) -> str:
    """Render one execution report as a CSV line ending in a newline."""
    fields = (
        report.oid,
        report.coid,
        instrument_text[:_INSTRUMENT_LIMIT],
        str(int(side)),
        exec_status_to_string(report.status),
        str(report.quantity),
        price_text,
        report.reason,
        report.timestamp,
    )
    return ",".join(fields) + "\n"


def _read_orders(input_path: str) -> Iterator[InboundOrder]:
    """Yield orders from an input file, skipping its header and short rows."""
    try:
        stream = open(
            input_path, encoding=_FILE_ENCODING, errors=_FILE_ERRORS, newline="\n"
        )
    except OSError:
        print(f"Unable to open input file: {input_path}", file=sys.stderr)
        return
    with stream:
        rows = read_csv_rows(stream)
        next(rows, None)
        for row in rows:
            if len(row) < 5:
                continue
            yield InboundOrder(
                coid=row[0][:_COID_LIMIT],
                instrument=row[1][:_INSTRUMENT_LIMIT],
                side=parse_int(row[2]),
                quantity=parse_int(row[3]),
                price=parse_double(row[4]),
            )


class Application:
    """Processes order files into report files, one file per PROCESS command."""

    def __init__(self) -> None:
        self._initialized = False
        self._next_oid = 1
        self._timestamps = TimestampCache()
        self._reset_books()

    def __enter__(self) -> Application:
        self._init()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop the background timestamp refresher."""
        if not self._initialized:
            return
        self._timestamps.stop()
        self._initialized = False

    def run(self, stdin: TextIO | None = None) -> None:
        """Read PROCESS <path> and QUIT commands until QUIT or end of input."""
        stream = sys.stdin if stdin is None else stdin
        self._init()
        for line in stream:
            if line.endswith("\n"):
                line = line[:-1]
            if line == "QUIT":
                break
            tokens = line.split()
            command = tokens[0] if tokens else ""
            path = tokens[1] if len(tokens) > 1 else ""
            if command == "PROCESS" and path:
                self.process_file(path)

    def process_file(self, input_path: str) -> None:
        """Match every order in one input file and write its report file.

        Raises ValueError when a numeric field of the input cannot be parsed.
        """
        total_started = time.perf_counter()
        self._init()
        self._next_oid = 1
        self._reset_books()

        output_path = derive_output_path(input_path)
        os.makedirs(OUTPUT_DIR, exist_ok=True)
        try:
            out = open(
                output_path,
                "w",
                encoding=_FILE_ENCODING,
                errors=_FILE_ERRORS,
                newline="\n",
            )
        except OSError:
            print(f"Unable to open output file: {output_path}", file=sys.stderr)
            return

        produced = 0
        producer_sec = 0.0
        matcher_sec = 0.0
        with out:
            write_started = time.perf_counter()
            out.write(REPORT_HEADER)
            orders = _read_orders(input_path)
            while True:
                before_read = time.perf_counter()
                order = next(orders, None)
                after_read = time.perf_counter()
                producer_sec += after_read - before_read
                if order is None:
                    break
                produced += 1
                rows = self._handle_order(order)
                matcher_sec += time.perf_counter() - after_read
                out.writelines(rows)

        finished = time.perf_counter()
        total_sec = finished - total_started
        write_sec = finished - write_started
        orders_per_sec = produced / total_sec if total_sec > 0.0 else 0.0
        print(f"Wrote reports to {output_path}")
        print(
            f"PERF orders={produced} consumed={produced}"
            f" total_sec={total_sec:g} orders_per_sec={orders_per_sec:g}"
            f" producer_sec={producer_sec:g} matcher_sec={matcher_sec:g}"
            f" write_sec={write_sec:g}"
        )

    def _init(self) -> None:
        if self._initialized:
            return
        self._timestamps.start()
        self._initialized = True

    def _reset_books(self) -> None:
        self._order_pool: MemPool[Order] = MemPool(Order, ORDER_POOL_INITIAL_CAPACITY)
        self._report_pool: MemPool[ExecutionReport] = MemPool(
            ExecutionReport, REPORT_POOL_INITIAL_CAPACITY
        )
        self._buy_books = [OrderBook(ORDER_BOOK_TICK_CAPACITY) for _ in InstrumentType]
        self._sell_books = [OrderBook(ORDER_BOOK_TICK_CAPACITY) for _ in InstrumentType]
        self._matcher = MatchingEngine(
            self._order_pool, self._report_pool, self._buy_books, self._sell_books
        )

    def _handle_order(self, msg: InboundOrder) -> list[str]:
        """Validate and match one order, returning its report rows in order."""
        timestamp = self._timestamps.snapshot()
        oid = f"ord{self._next_oid}"
        self._next_oid += 1

        instrument = parse_instrument(msg.instrument)
        reason = validate_order(instrument, msg.side, msg.price, msg.quantity)
        if reason is not None:
            side = Side.SELL if msg.side == Side.SELL else Side.BUY
            # The rejected quantity is stored as a 16-bit unsigned value.
            quantity = max(msg.quantity, 0) & 0xFFFF
            reject = self._report_pool.allocate(
                oid,
                msg.coid,
                None,
                side,
                0,
                quantity,
                ExecStatus.REJECTED,
                reason,
                timestamp,
            )
            row = format_report_row(
                reject, msg.instrument, msg.side, format_price(msg.price)
            )
            self._report_pool.deallocate(reject)
            return [row]

        order = self._order_pool.allocate(
            oid,
            msg.coid,
            instrument,
            Side.BUY if msg.side == Side.BUY else Side.SELL,
            double_to_ticks(msg.price),
            msg.quantity,
        )
        rows: list[str] = []

        def emit(report: ExecutionReport) -> None:
            rows.append(
                format_report_row(
                    report,
                    instrument_to_string(report.instrument),
                    int(report.side),
                    format_ticks(report.price),
                )
            )
            self._report_pool.deallocate(report)

        self._matcher.process_order(order, emit, timestamp)
        return rows


def main(argv: list[str] | None = None) -> int:
    """Run the command loop on standard input; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="flower-exchange",
        description="Read 'PROCESS <orders.csv>' and 'QUIT' commands from "
        "standard input and write execution reports to output/.",
    )
    parser.parse_args(argv)
    with Application() as app:
        try:
            app.run()
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())