"""Console input collaborator.

Reads raw text and turns it into values, raising ``MALFORMED_INPUT`` failures
that guarded scopes treat like any other failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from castor.kinds import MALFORMED_INPUT

if TYPE_CHECKING:
    from typing import TextIO


def parse_int(raw: str) -> int:
    """Parse one integer, rejecting anything else with a MALFORMED_INPUT failure."""
    text = raw.strip()
    try:
        return int(text, 10)
    except ValueError as e:
        raise MALFORMED_INPUT(f"Expected an integer, got {text!r}") from e


def read_int(stream: TextIO, *, prompt: str | None = None, echo: TextIO | None = None) -> int:
    """Read a line from *stream* and parse it as an integer.

    Args:
        stream: Text stream to read one line from.
        prompt: Optional prompt written to *echo* before reading.
        echo: Stream for the prompt; nothing is written when omitted.
    """
    if prompt and echo is not None:
        echo.write(prompt)
        echo.flush()
    line = stream.readline()
    if not line:
        raise MALFORMED_INPUT("No input available")
    return parse_int(line)


__all__ = ["parse_int", "read_int"]
