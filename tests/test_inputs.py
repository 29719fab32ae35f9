"""Input collaborator: integers in, MALFORMED_INPUT failures for the rest."""

from __future__ import annotations

import io

import pytest

from castor.failure import Failure
from castor.inputs import parse_int, read_int
from castor.kinds import MALFORMED_INPUT, VALIDATION

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(("raw", "expected"), [("5", 5), (" 0\n", 0), ("-12", -12)])
def test_parse_int_accepts_integers(raw: str, expected: int) -> None:
    assert parse_int(raw) == expected


@pytest.mark.parametrize("raw", ["five", "", "3.5", "0x10"])
def test_parse_int_rejects_non_integers(raw: str) -> None:
    with pytest.raises(Failure) as exc:
        parse_int(raw)

    assert exc.value.kind is MALFORMED_INPUT
    assert exc.value.is_a(VALIDATION)
    assert isinstance(exc.value.cause, ValueError)


def test_read_int_reads_one_line() -> None:
    stream = io.StringIO("7\n8\n")
    assert read_int(stream) == 7
    assert read_int(stream) == 8


def test_read_int_writes_prompt_to_echo() -> None:
    echo = io.StringIO()
    read_int(io.StringIO("1\n"), prompt="Enter a divisor: ", echo=echo)
    assert echo.getvalue() == "Enter a divisor: "


def test_read_int_at_end_of_input_is_malformed() -> None:
    with pytest.raises(Failure, match="No input available") as exc:
        read_int(io.StringIO(""))
    assert exc.value.kind is MALFORMED_INPUT
