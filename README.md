# flowerexchange

A small exchange that matches buy and sell orders for five flower
instruments (Rose, Lavender, Lotus, Tulip, Orchid) using price-time
priority. It writes one execution report per event to a CSV file.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running

Start the command loop:

```
flower-exchange
```

It reads commands from standard input, one per line:

- `PROCESS <path>` reads an order CSV and writes the reports to
  `output/<stem>_reports.csv`. The `output` directory is relative to the
  current directory and is created if needed. `<stem>` is the input file
  name without its extension. When the file is done, the loop prints
  `Wrote reports to <path>` and a `PERF` line with order counts and timings.
- `QUIT` ends the loop. The loop also ends at the end of input.

Any other line is ignored. Each `PROCESS` starts from empty order books,
and order ids start again at `ord1`.

To process a single file:

```
printf "PROCESS orders.csv\nQUIT\n" | flower-exchange
```

If the input file cannot be opened, a message goes to standard error and
the report file holds only its header line. If a side, quantity or price
field cannot be parsed as a number, the command prints `error: ...` to
standard error and exits with status 1.

## Input format

The first line is a header and is skipped. Each following row has five
comma-separated fields. Quoting is not supported.

```
Client Order ID,Instrument,Side,Quantity,Price
aa13,Rose,2,100,55.00
```

Side is `1` for buy and `2` for sell. Rows with fewer than five fields are
skipped. Numbers may have spaces or tabs around them. Prices may use an
exponent, for example `1e2`.

## Validation

An order is rejected with the first reason that applies:

| Reason               | Condition                                         |
|----------------------|---------------------------------------------------|
| `Invalid instrument` | not one of the five instruments                   |
| `Invalid side`       | side is not 1 or 2                                |
| `Invalid size`       | quantity not a multiple of 10, or outside 10..1000 |
| `Invalid price`      | price not finite, not above 0, or above 1000.00   |

A rejected order still uses up an order id. Its report row shows the
instrument, side and price as they were given.

## Output format

```
Order ID,Client Order Id,Instrument,Side,Exec Status,Quantity,Price,Reason,Timestamp
ord1,aa13,Rose,2,New,100,55.00,,20240101-120000.000
```

Exec Status is one of `New`, `Reject`, `Fill` or `Pfill`. Prices always
have two decimals. Timestamps are local time in the form
`YYYYMMDD-HHMMSS.sss`. A background thread refreshes the timestamp about
every millisecond.

An incoming order that crosses the book trades against the best opposite
price level, oldest order first, at the resting order's price. Each trade
gives two rows: one for the incoming order, then one for the resting order.
An order with quantity left after matching rests in the book. It gets a
`New` row only if it traded nothing.

## Using it as a library

```python
from flowerexchange.application import Application

with Application() as app:
    app.process_file("orders.csv")
```

`Application.run(stdin)` runs the command loop on any text stream. Using
`with` makes sure the timestamp thread stops; `Application.close()` does the
same. `process_file` raises `ValueError` on an unparsable numeric field.

The parts can also be used on their own:

- `flowerexchange.validator.validate_order(instrument, side, price, quantity)`
  returns the rejection reason, or `None` for a valid order.
- `flowerexchange.order_book.OrderBook` keeps FIFO queues per price tick,
  with `add_order`, `peek_order`, `pop_order`, `find_first` and `find_last`.
- `flowerexchange.matching_engine.MatchingEngine.process_order` matches one
  `Order` and passes each `ExecutionReport` to a callback.
- `flowerexchange.mempool.MemPool` is an object pool with stable slot indices
  and checks for double frees.
- `flowerexchange.csv_reader.read_csv_rows` yields `CSVRow` objects from a
  text stream.
- `flowerexchange.timestamp_cache.TimestampCache` keeps a refreshed timestamp
  string.
- `flowerexchange.types` has the enums, price and tick conversion
  (`double_to_ticks`, `ticks_to_double`, `format_price`, `format_ticks`) and
  field parsers (`parse_int`, `parse_double`, `parse_instrument`).

## What it does not do

Orders come only from CSV files. There is no network order entry, and
orders cannot be cancelled or amended. Order books are not kept from one
`PROCESS` command to the next, and nothing is stored apart from the report
files. Each file is processed in a single pass on one thread.