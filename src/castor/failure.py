"""The Failure value raised by guarded operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from castor.errors import ConfigurationError, InvariantViolationError
from castor.kinds import FailureKind, kind_for_exception

if TYPE_CHECKING:
    from collections.abc import Iterator


class Failure(Exception):
    """An abnormal condition: a kind, a message and an optional cause.

    Kinds are data, not subclasses: ``Failure(VALIDATION, "...")`` and
    ``VALIDATION("...")`` are equivalent. The cause is stored on
    ``__cause__`` so standard tracebacks render the chain.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> None:
        if not isinstance(kind, FailureKind):
            raise ConfigurationError(
                f"Failure kind must be a FailureKind, got {type(kind).__name__}",
                hint="Use a kind from castor.kinds or registry.define(...).",
            )
        # args mirror the constructor so copy and pickle can rebuild the failure.
        super().__init__(kind, message)
        self.kind = kind
        self.message = str(message)
        if cause is not None:
            self.cause = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @cause.setter
    def cause(self, value: BaseException | None) -> None:
        if value is not None and not isinstance(value, BaseException):
            raise TypeError(
                f"Failure cause must be an exception or None, got {type(value).__name__}"
            )
        if value is not None:
            for link in iter_causes(value):
                if link is self:
                    raise InvariantViolationError(
                        f"Setting cause on {self!r} would make the cause chain cyclic"
                    )
        self.__cause__ = value

    @classmethod
    def from_exception(cls, exc: BaseException) -> Failure:
        """Translate a foreign exception; Failures are returned unchanged."""
        if isinstance(exc, Failure):
            return exc
        message = str(exc) or type(exc).__name__
        return cls(kind_for_exception(exc), message, cause=exc)

    def is_a(self, kind: FailureKind) -> bool:
        return self.kind.is_a(kind)

    def chain(self) -> Iterator[BaseException]:
        """Yield this failure followed by its causes, oldest last."""
        return iter_causes(self)

    @property
    def root_cause(self) -> BaseException:
        last: BaseException = self
        for last in self.chain():  # noqa: B007
            pass
        return last

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"Failure({self.kind.name!r}, {self.message!r})"


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__`` chain, with cycle protection."""
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        yield cur
        cur = cur.__cause__
