"""Recovery handlers as ordered data.

A handler list is an explicit, ordered collection of (kind filter, response)
pairs. The runner asks the chain for the first handler whose filter is an
ancestor-or-equal of the raised failure's kind. Because order alone decides,
a general filter placed before a specific one makes the specific handler
unreachable; :meth:`HandlerChain.shadowed` reports those statically.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from castor.errors import ConfigurationError
from castor.kinds import FailureKind, KindRegistry, registry as default_registry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from typing import TypeAlias

    from castor.failure import Failure

    HandlerSpec: TypeAlias = "Handler | tuple[FailureKind | str, Callable[[Failure], Any]]"


@dataclass(frozen=True)
class Handler:
    """A kind filter paired with the response to run on a match."""

    kind: FailureKind
    response: Callable[[Failure], Any]
    #: Label used in logs and shadowing reports; defaults to the response name.
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, FailureKind):
            raise ConfigurationError(
                f"Handler filter must be a FailureKind, got {type(self.kind).__name__}",
                hint="Pass a kind from castor.kinds or a registered kind name.",
            )
        if not callable(self.response):
            raise ConfigurationError(
                "Handler response must be callable",
                hint="Pass a function taking the Failure, e.g. lambda f: print(f).",
            )
        if self.name is None:
            label = getattr(self.response, "__name__", None) or type(self.response).__name__
            object.__setattr__(self, "name", label)

    def matches(self, failure: Failure) -> bool:
        return failure.kind.is_a(self.kind)


def on(
    kind: FailureKind | str,
    response: Callable[[Failure], Any],
    *,
    name: str | None = None,
    kinds: KindRegistry | None = None,
) -> Handler:
    """Build a handler, resolving *kind* by name when given a string."""
    resolved = (kinds or default_registry).resolve(kind)
    return Handler(resolved, response, name)


@dataclass(frozen=True)
class Shadowing:
    """A handler that can never run because an earlier one always matches first."""

    index: int
    handler: Handler
    by_index: int
    by_handler: Handler

    def describe(self) -> str:
        return (
            f"handler #{self.index} ({self.handler.name}, kind {self.handler.kind.name!r}) "
            f"is shadowed by handler #{self.by_index} "
            f"({self.by_handler.name}, kind {self.by_handler.kind.name!r})"
        )


class HandlerChain:
    """An immutable, ordered sequence of recovery handlers."""

    __slots__ = ("_handlers",)

    def __init__(
        self,
        handlers: Iterable[HandlerSpec] = (),
        *,
        kinds: KindRegistry | None = None,
    ) -> None:
        self._handlers: tuple[Handler, ...] = tuple(
            _coerce(spec, kinds or default_registry) for spec in handlers
        )

    @classmethod
    def of(cls, handlers: HandlerChain | Iterable[HandlerSpec] | None) -> HandlerChain:
        """Return *handlers* as a chain, reusing an existing chain as is."""
        if isinstance(handlers, HandlerChain):
            return handlers
        return cls(handlers or ())

    def match(self, failure: Failure) -> tuple[int, Handler] | None:
        """Return the first matching handler and its position, in declared order."""
        for index, handler in enumerate(self._handlers):
            if handler.matches(failure):
                return index, handler
        return None

    def shadowed(self) -> list[Shadowing]:
        """Report every handler made unreachable by an earlier, broader one."""
        found: list[Shadowing] = []
        for j, later in enumerate(self._handlers):
            for i in range(j):
                earlier = self._handlers[i]
                if later.kind.is_a(earlier.kind):
                    found.append(Shadowing(j, later, i, earlier))
                    break
        return found

    def __iter__(self) -> Iterator[Handler]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __getitem__(self, index: int) -> Handler:
        return self._handlers[index]

    def __repr__(self) -> str:
        inner = ", ".join(f"{h.kind.name}->{h.name}" for h in self._handlers)
        return f"HandlerChain([{inner}])"


def _coerce(spec: HandlerSpec, kinds: KindRegistry) -> Handler:
    if isinstance(spec, Handler):
        return spec
    if isinstance(spec, tuple) and len(spec) == 2:
        kind, response = spec
        return Handler(kinds.resolve(kind), response)
    raise ConfigurationError(
        f"Cannot interpret {spec!r} as a recovery handler",
        hint="Use Handler(kind, response), on(kind, response) or a (kind, response) tuple.",
    )


__all__ = ["Handler", "HandlerChain", "Shadowing", "on"]
