import io
import os
import re
import sys
from pathlib import Path

import pytest

from flowerexchange.application import (
    REPORT_HEADER,
    Application,
    derive_output_path,
    format_report_row,
    main,
)
from flowerexchange.types import ExecStatus, ExecutionReport, InstrumentType, Side

HEADER = (
    "Order ID,Client Order Id,Instrument,Side,Exec "
    "Status,Quantity,Price,Reason,Timestamp"
)
INPUT_HEADER = "Client Order ID,Instrument,Side,Quantity,Price\n"
TIMESTAMP_RE = re.compile(r"\d{8}-\d{6}\.\d{3}")

FIXTURES = {
    1: ["aa13,Rose,2,100,55.00"],
    2: [
        "aa13,Rose,2,100,55.00",
        "aa14,Rose,2,100,45.00",
        "aa15,Rose,1,100,35.00",
    ],
    3: [
        "aa13,Rose,2,100,55.00",
        "aa14,Rose,2,100,45.00",
        "aa15,Rose,1,100,45.00",
    ],
    4: [
        "aa13,Rose,2,100,55.00",
        "aa14,Rose,2,100,45.00",
        "aa15,Rose,1,200,45.00",
    ],
    5: [
        "aa13,Rose,1,100,55.00",
        "aa14,Rose,1,100,65.00",
        "aa15,Rose,2,300,1.00",
    ],
    6: [
        "aa13,Rose,1,100,55.00",
        "aa14,Rose,1,100,65.00",
        "aa15,Rose,2,300,1.00",
        "aa16,Rose,1,100,1.00",
    ],
    7: [
        "aa13,,1,100,55.00",
        "aa14,Rose,3,100,65.00",
        "aa15,Lavender,2,101,1.00",
        "aa16,Tulip,1,100,-1.00",
        "aa17,Orchid,1,1000,-1.00",
    ],
    8: [
        "aa12,Rose,2,200,45.00",
        "aa13,Rose,2,200,45.00",
        "aa14,Rose,1,100,45.00",
        "aa15,Rose,1,100,45.00",
    ],
}

EXPECTED = {
    1: [HEADER, "ord1,aa13,Rose,2,New,100,55.00,,"],
    2: [
        HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,,",
        "ord2,aa14,Rose,2,New,100,45.00,,",
        "ord3,aa15,Rose,1,New,100,35.00,,",
    ],
    3: [
        HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,,",
        "ord2,aa14,Rose,2,New,100,45.00,,",
        "ord3,aa15,Rose,1,Fill,100,45.00,,",
        "ord2,aa14,Rose,2,Fill,100,45.00,,",
    ],
    4: [
        HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,,",
        "ord2,aa14,Rose,2,New,100,45.00,,",
        "ord3,aa15,Rose,1,Pfill,100,45.00,,",
        "ord2,aa14,Rose,2,Fill,100,45.00,,",
    ],
    5: [
        HEADER,
        "ord1,aa13,Rose,1,New,100,55.00,,",
        "ord2,aa14,Rose,1,New,100,65.00,,",
        "ord3,aa15,Rose,2,Pfill,100,65.00,,",
        "ord2,aa14,Rose,1,Fill,100,65.00,,",
        "ord3,aa15,Rose,2,Pfill,100,55.00,,",
        "ord1,aa13,Rose,1,Fill,100,55.00,,",
    ],
    6: [
        HEADER,
        "ord1,aa13,Rose,1,New,100,55.00,,",
        "ord2,aa14,Rose,1,New,100,65.00,,",
        "ord3,aa15,Rose,2,Pfill,100,65.00,,",
        "ord2,aa14,Rose,1,Fill,100,65.00,,",
        "ord3,aa15,Rose,2,Pfill,100,55.00,,",
        "ord1,aa13,Rose,1,Fill,100,55.00,,",
        "ord4,aa16,Rose,1,Fill,100,1.00,,",
        "ord3,aa15,Rose,2,Fill,100,1.00,,",
    ],
    7: [
        HEADER,
        "ord1,aa13,,1,Reject,100,55.00,Invalid instrument,",
        "ord2,aa14,Rose,3,Reject,100,65.00,Invalid side,",
        "ord3,aa15,Lavender,2,Reject,101,1.00,Invalid size,",
        "ord4,aa16,Tulip,1,Reject,100,-1.00,Invalid price,",
        "ord5,aa17,Orchid,1,Reject,1000,-1.00,Invalid price,",
    ],
    8: [
        HEADER,
        "ord1,aa12,Rose,2,New,200,45.00,,",
        "ord2,aa13,Rose,2,New,200,45.00,,",
        "ord3,aa14,Rose,1,Fill,100,45.00,,",
        "ord1,aa12,Rose,2,Pfill,100,45.00,,",
        "ord4,aa15,Rose,1,Fill,100,45.00,,",
        "ord1,aa12,Rose,2,Fill,100,45.00,,",
    ],
}

STRIPPED_HEADER = (
    "Order ID,Client Order Id,Instrument,Side,Exec Status,Quantity,Price,Reason"
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def app():
    application = Application()
    yield application
    application.close()


def write_input(directory, name, rows):
    path = directory / name
    path.write_text(INPUT_HEADER + "".join(row + "\n" for row in rows))
    return str(path)


def write_fixture(directory, number):
    return write_input(directory, f"example{number}_orders.csv", FIXTURES[number])


def output_file(directory, name):
    return directory / "output" / name


def read_lines(path):
    return Path(path).read_text().splitlines()


def drop_last_column(line):
    return line.rsplit(",", 1)[0] if "," in line else line


def stripped_lines(path):
    return [drop_last_column(line) for line in read_lines(path)]


def normalize(text):
    return "".join(drop_last_column(line) + "\n" for line in text.splitlines())


def split_cols(line):
    return line.split(",")


def test_derive_output_path_uses_stem():
    assert derive_output_path("input_files/example1_orders.csv") == os.path.join(
        "output", "example1_orders_reports.csv"
    )


def test_format_report_row_pins_layout():
    report = ExecutionReport(
        "ord7",
        "c1",
        InstrumentType.ROSE,
        Side.SELL,
        4500,
        100,
        ExecStatus.PFILL,
        "",
        "20240101-120000.123",
    )
    row = format_report_row(report, "Rose", 2, "45.00")
    assert row == "ord7,c1,Rose,2,Pfill,100,45.00,,20240101-120000.123\n"


def test_header_is_written_first(workdir, app):
    path = write_fixture(workdir, 1)
    app.process_file(path)
    text = Path(derive_output_path(path)).read_text()
    assert text.startswith(REPORT_HEADER)
    assert text.split("\n", 1)[0] == HEADER


@pytest.mark.parametrize("number, expected", sorted(EXPECTED.items()))
def test_example_fixtures_match_canonical_output(workdir, app, number, expected):
    input_path = write_fixture(workdir, number)
    app.process_file(input_path)

    lines = read_lines(derive_output_path(input_path))
    assert [drop_last_column(line) for line in lines] == [
        drop_last_column(line) for line in expected
    ]
    for line in lines[1:]:
        cols = split_cols(line)
        assert len(cols) == 9
        assert TIMESTAMP_RE.fullmatch(cols[8])


def test_missing_input_writes_header_only(workdir, app, capsys):
    app.process_file(str(workdir / "does_not_exist.csv"))
    captured = capsys.readouterr()
    assert "Unable to open input file" in captured.err
    assert read_lines(output_file(workdir, "does_not_exist_reports.csv")) == [HEADER]


def test_missing_input_does_not_break_command_loop(workdir, app):
    first = write_fixture(workdir, 1)
    missing = str(workdir / "nope.csv")
    app.run(io.StringIO(f"PROCESS {missing}\nPROCESS {first}\nQUIT\n"))
    assert stripped_lines(derive_output_path(first)) == [
        STRIPPED_HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,",
    ]
    assert read_lines(derive_output_path(missing)) == [HEADER]


def test_repeated_process_resets_order_sequence(workdir, app):
    path = write_fixture(workdir, 3)
    app.run(io.StringIO(f"PROCESS {path}\nPROCESS {path}\nQUIT\n"))
    assert stripped_lines(derive_output_path(path)) == [
        STRIPPED_HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,",
        "ord2,aa14,Rose,2,New,100,45.00,",
        "ord3,aa15,Rose,1,Fill,100,45.00,",
        "ord2,aa14,Rose,2,Fill,100,45.00,",
    ]


def test_malformed_numeric_input_raises(workdir, app):
    path = write_input(workdir, "malformed_numeric_orders.csv", ["aa13,Rose,abc,100,55.00"])
    with pytest.raises(ValueError):
        app.process_file(path)


def test_malformed_numeric_input_fails_main(workdir, monkeypatch):
    path = write_input(workdir, "malformed_numeric_orders.csv", ["aa13,Rose,abc,100,55.00"])
    monkeypatch.setattr(sys, "stdin", io.StringIO(f"PROCESS {path}\nQUIT\n"))
    assert main([]) >= 1


def test_main_processes_and_returns_zero(workdir, monkeypatch):
    path = write_fixture(workdir, 1)
    monkeypatch.setattr(sys, "stdin", io.StringIO(f"PROCESS {path}\nQUIT\n"))
    assert main([]) == 0
    lines = read_lines(output_file(workdir, "example1_orders_reports.csv"))
    assert drop_last_column(lines[1]) == "ord1,aa13,Rose,2,New,100,55.00,"


def test_run_stops_at_end_of_input_without_quit(workdir, app):
    path = write_fixture(workdir, 2)
    app.run(io.StringIO(f"PROCESS {path}\n"))
    assert stripped_lines(derive_output_path(path)) == [
        STRIPPED_HEADER,
        "ord1,aa13,Rose,2,New,100,55.00,",
        "ord2,aa14,Rose,2,New,100,45.00,",
        "ord3,aa15,Rose,1,New,100,35.00,",
    ]


def test_run_ignores_unknown_commands_and_stops_at_quit(workdir, app):
    path = write_fixture(workdir, 1)
    app.run(io.StringIO(f"HELLO {path}\nPROCESS\nQUIT\nPROCESS {path}\n"))
    assert os.path.exists(derive_output_path(path)) is False


def test_multiple_sequential_runs_remain_deterministic(workdir, app):
    path = write_fixture(workdir, 5)
    app.run(io.StringIO(f"PROCESS {path}\n" * 50 + "QUIT\n"))
    assert stripped_lines(derive_output_path(path)) == [
        STRIPPED_HEADER,
        "ord1,aa13,Rose,1,New,100,55.00,",
        "ord2,aa14,Rose,1,New,100,65.00,",
        "ord3,aa15,Rose,2,Pfill,100,65.00,",
        "ord2,aa14,Rose,1,Fill,100,65.00,",
        "ord3,aa15,Rose,2,Pfill,100,55.00,",
        "ord1,aa13,Rose,1,Fill,100,55.00,",
    ]


def test_repeated_run_output_is_stable(workdir, app):
    path = write_fixture(workdir, 7)
    expected = (
        STRIPPED_HEADER + "\n"
        "ord1,aa13,,1,Reject,100,55.00,Invalid instrument\n"
        "ord2,aa14,Rose,3,Reject,100,65.00,Invalid side\n"
        "ord3,aa15,Lavender,2,Reject,101,1.00,Invalid size\n"
        "ord4,aa16,Tulip,1,Reject,100,-1.00,Invalid price\n"
        "ord5,aa17,Orchid,1,Reject,1000,-1.00,Invalid price\n"
    )
    app.process_file(path)
    assert normalize(Path(derive_output_path(path)).read_text()) == expected
    app.process_file(path)
    assert normalize(Path(derive_output_path(path)).read_text()) == expected


@pytest.mark.parametrize("number", sorted(FIXTURES))
def test_outputs_stable_across_fresh_applications(workdir, number):
    path = write_fixture(workdir, number)
    with Application() as first_app:
        first_app.process_file(path)
    first = Path(derive_output_path(path)).read_text()
    assert first.startswith(HEADER + "\n")
    with Application() as second_app:
        second_app.process_file(path)
    second = Path(derive_output_path(path)).read_text()
    assert normalize(second) == normalize(first)
    assert second.splitlines()[0] == HEADER


@pytest.mark.parametrize("number", sorted(FIXTURES))
def test_outputs_keep_stable_csv_shape(workdir, app, number):
    path = write_fixture(workdir, number)
    app.process_file(path)
    out = Path(derive_output_path(path))
    lines = read_lines(out)
    assert lines[0] == HEADER
    assert len(lines) == len(EXPECTED[number])
    for line in lines[1:]:
        assert line.count(",") == 8
        cols = split_cols(line)
        assert len(cols) == 9
        assert TIMESTAMP_RE.fullmatch(cols[8])
    assert out.read_text().endswith("\n")


def test_rejected_orders_produce_one_reject_row_each(workdir, app):
    path = write_input(
        workdir,
        "reject_reason_matrix_orders.csv",
        [
            "r1,,1,100,55.00",
            "r2,Rose,3,100,55.00",
            "r3,Rose,1,15,55.00",
            "r4,Rose,1,100,-1.00",
        ],
    )
    app.process_file(path)
    lines = read_lines(derive_output_path(path))
    assert len(lines) == 5
    for line in lines[1:]:
        cols = split_cols(line)
        assert len(cols) == 9
        assert cols[4] == "Reject"
        assert cols[7]
        assert TIMESTAMP_RE.fullmatch(cols[8])
    assert [split_cols(line)[7] for line in lines[1:]] == [
        "Invalid instrument",
        "Invalid side",
        "Invalid size",
        "Invalid price",
    ]


def test_order_ids_progress_after_rejection(workdir, app):
    path = write_input(
        workdir,
        "reject_then_valid_orders.csv",
        ["x1,,1,100,55.00", "x2,Rose,2,100,55.00", "x3,Rose,1,100,55.00"],
    )
    app.process_file(path)
    lines = read_lines(derive_output_path(path))
    assert len(lines) == 5
    assert split_cols(lines[1])[0] == "ord1"
    assert ",Reject," in lines[1]
    ids = [split_cols(line)[0] for line in lines[2:]]
    assert "ord2" in ids
    assert "ord3" in ids


def test_oversized_and_non_finite_prices_are_rejected(workdir, app):
    path = write_input(
        workdir,
        "price_overflow_orders.csv",
        ["p1,Rose,1,100,1000000000000.00", "p2,Rose,1,100,1e309"],
    )
    app.process_file(path)
    lines = read_lines(derive_output_path(path))
    assert len(lines) == 3
    for line in lines[1:]:
        cols = split_cols(line)
        assert len(cols) == 9
        assert cols[4] == "Reject"
        assert cols[7] == "Invalid price"
        assert TIMESTAMP_RE.fullmatch(cols[8])


def test_short_rows_are_skipped(workdir, app):
    path = write_input(workdir, "short_rows.csv", ["s1,Rose,1", "s2,Rose,2,100,10.00"])
    app.process_file(path)
    lines = read_lines(derive_output_path(path))
    assert [drop_last_column(line) for line in lines[1:]] == [
        "ord1,s2,Rose,2,New,100,10.00,"
    ]


def test_crlf_input_is_parsed(workdir, app):
    path = workdir / "crlf_orders.csv"
    path.write_bytes(b"Client Order ID,Instrument,Side,Quantity,Price\r\nc1,Rose,1,100,12.50\r\n")
    app.process_file(str(path))
    lines = read_lines(derive_output_path(str(path)))
    assert drop_last_column(lines[1]) == "ord1,c1,Rose,1,New,100,12.50,"


def test_process_prints_summary(workdir, app, capsys):
    path = write_fixture(workdir, 2)
    app.process_file(path)
    out = capsys.readouterr().out
    assert f"Wrote reports to {os.path.join('output', 'example2_orders_reports.csv')}" in out
    assert "PERF orders=3 consumed=3" in out