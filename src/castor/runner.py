"""Guarded operation runner.

Runs one operation inside a guarded scope:

- the operation runs; a raised failure is offered to the handlers in declared
  order and the first match recovers the scope;
- an unmatched failure propagates unchanged;
- the cleanup action runs exactly once on every exit path, after the operation
  and any handler, before the scope returns or raises.

Per invocation the scope moves through
``RUNNING -> {COMPLETED, RECOVERING, PROPAGATING} -> CLEANING_UP -> DONE``.
A handler that raises moves ``RECOVERING -> PROPAGATING``.

Example:
    result = run(
        lambda: 100 // divisor,
        [(ARITHMETIC, lambda f: print("Division by zero")),
         (FAILURE, lambda f: print(f"Something went wrong: {f}"))],
        cleanup=lambda: print("done"),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import functools
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from castor.config import Settings, resolve_settings
from castor.errors import ConfigurationError
from castor.failure import Failure, iter_causes
from castor.handlers import Handler, HandlerChain

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from castor.handlers import HandlerSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ScopeState(Enum):
    """States a guarded scope passes through during one invocation."""

    RUNNING = "running"
    COMPLETED = "completed"
    RECOVERING = "recovering"
    PROPAGATING = "propagating"
    CLEANING_UP = "cleaning_up"
    DONE = "done"


@dataclass(frozen=True)
class ScopeReport:
    """Outcome of one guarded-scope invocation.

    Exactly one of ``value`` / ``error`` is meaningful: when ``error`` is set
    the scope produced no value.
    """

    value: Any = None
    error: BaseException | None = None
    #: The failure a handler recovered from, when one matched.
    recovered_from: Failure | None = None
    handler: Handler | None = None
    handler_index: int | None = None
    #: What a raising cleanup action replaced (the in-flight or recovered failure).
    superseded: BaseException | None = None
    states: tuple[ScopeState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def recovered(self) -> bool:
        return self.recovered_from is not None and self.error is None

    def unwrap(self) -> Any:
        """Return the value, or raise the error that left the scope."""
        if self.error is not None:
            raise self.error
        return self.value


def _noop() -> None:
    return None


class GuardedScope:
    """Reusable binding of ordered recovery handlers and one cleanup action.

    The scope holds no per-invocation state; every :meth:`run` is an
    independent invocation with its own exactly-once cleanup.
    """

    def __init__(
        self,
        handlers: HandlerChain | Iterable[HandlerSpec] | None = None,
        cleanup: Callable[[], Any] | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        if cleanup is not None and not callable(cleanup):
            raise ConfigurationError(
                "cleanup must be callable",
                hint="Pass a zero-argument function, e.g. cleanup=lambda: conn.close().",
            )
        self.handlers = HandlerChain.of(handlers)
        self.cleanup: Callable[[], Any] = cleanup or _noop
        self.settings = settings or resolve_settings()
        self._check_reachability()

    def _check_reachability(self) -> None:
        shadowed = self.handlers.shadowed()
        if not shadowed:
            return
        details = "; ".join(s.describe() for s in shadowed)
        if self.settings.strict_handlers:
            raise ConfigurationError(
                f"Unreachable recovery handlers: {details}",
                hint="Declare specific handlers before general ones.",
            )
        logger.warning("Unreachable recovery handlers: %s", details)

    def run(self, operation: Callable[[], T]) -> T | Any:
        """Run *operation*; return its value or the recovering handler's value."""
        return self.execute(operation).unwrap()

    def execute(self, operation: Callable[[], Any]) -> ScopeReport:
        """Run *operation* and report the outcome instead of raising."""
        states = [ScopeState.RUNNING]
        value: Any = None
        error: BaseException | None = None
        recovered_from: Failure | None = None
        hit: tuple[int, Handler] | None = None

        try:
            value = operation()
        except Exception as exc:
            try:
                failure = self._as_failure(exc)
                hit = self.handlers.match(failure) if failure is not None else None
            except BaseException as dispatch_exc:
                # Translating or matching failed; that error leaves the scope instead.
                states.append(ScopeState.PROPAGATING)
                error = dispatch_exc
                logger.debug(
                    "Offering %s to handlers raised %r; propagating",
                    type(exc).__name__,
                    dispatch_exc,
                )
            else:
                if hit is None:
                    states.append(ScopeState.PROPAGATING)
                    error = exc
                    logger.debug("No handler matched %r; propagating", exc)
                else:
                    index, handler = hit
                    states.append(ScopeState.RECOVERING)
                    recovered_from = failure
                    logger.debug(
                        "Handler #%d (%s) recovering from %r", index, handler.name, failure
                    )
                    try:
                        value = handler.response(failure)
                    except BaseException as handler_exc:
                        states.append(ScopeState.PROPAGATING)
                        error = handler_exc
                        logger.debug(
                            "Handler #%d raised %r; propagating", index, handler_exc
                        )
        except BaseException as exc:
            # Not offered to handlers, but cleanup still runs.
            states.append(ScopeState.PROPAGATING)
            error = exc
        else:
            states.append(ScopeState.COMPLETED)

        states.append(ScopeState.CLEANING_UP)
        superseded: BaseException | None = None
        try:
            self.cleanup()
        except BaseException as cleanup_exc:
            superseded = error if error is not None else recovered_from
            self._supersede(cleanup_exc, superseded)
            if superseded is None:
                logger.warning(
                    "Cleanup raised %r; it replaces the scope outcome (result discarded)",
                    cleanup_exc,
                )
            else:
                logger.warning(
                    "Cleanup raised %r; it replaces the scope outcome (%r)",
                    cleanup_exc,
                    superseded,
                )
            error = cleanup_exc
            value = None
        states.append(ScopeState.DONE)

        if error is not None:
            value = None
        return ScopeReport(
            value=value,
            error=error,
            recovered_from=recovered_from,
            handler=hit[1] if recovered_from is not None and hit else None,
            handler_index=hit[0] if recovered_from is not None and hit else None,
            superseded=superseded,
            states=tuple(states),
        )

    def _as_failure(self, exc: Exception) -> Failure | None:
        if isinstance(exc, Failure):
            return exc
        if self.settings.translate_exceptions:
            return Failure.from_exception(exc)
        return None

    def _supersede(
        self, cleanup_exc: BaseException, superseded: BaseException | None
    ) -> None:
        if self.settings.cleanup_failure_policy == "discard" or superseded is None:
            return
        if cleanup_exc.__cause__ is not None:
            return
        # Never link an exception into its own chain.
        if any(link is cleanup_exc for link in iter_causes(superseded)):
            return
        if isinstance(cleanup_exc, Failure):
            cleanup_exc.cause = superseded
        else:
            cleanup_exc.__cause__ = superseded

    def __repr__(self) -> str:
        return f"GuardedScope(handlers={self.handlers!r}, cleanup={self.cleanup!r})"


def execute(
    operation: Callable[[], Any],
    handlers: HandlerChain | Iterable[HandlerSpec] | None = None,
    cleanup: Callable[[], Any] | None = None,
    *,
    settings: Settings | None = None,
) -> ScopeReport:
    """Run *operation* in a one-off guarded scope and return its report."""
    return GuardedScope(handlers, cleanup, settings=settings).execute(operation)


def run(
    operation: Callable[[], T],
    handlers: HandlerChain | Iterable[HandlerSpec] | None = None,
    cleanup: Callable[[], Any] | None = None,
    *,
    settings: Settings | None = None,
) -> T | Any:
    """Run *operation* in a one-off guarded scope.

    Args:
        operation: Zero-argument callable doing the risky work.
        handlers: Ordered ``(kind, response)`` pairs or :class:`Handler` values.
            The first whose kind is an ancestor-or-equal of the failure's kind
            runs; later handlers never see the failure.
        cleanup: Zero-argument callable run exactly once on every exit path.
        settings: Runner settings; resolved from the environment when omitted.

    Returns:
        The operation's value on normal completion, or the matching handler's
        return value on recovery.

    Raises:
        The unmatched failure (unchanged), an exception raised by the handler,
        or an exception raised by the cleanup action, which supersedes both.
    """
    return execute(operation, handlers, cleanup, settings=settings).unwrap()


def guarded(
    *handlers: HandlerSpec,
    cleanup: Callable[[], Any] | None = None,
    settings: Settings | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T | Any]]:
    """Decorate a function so each call runs inside a fresh guarded invocation.

    The scope is built once, when the decorator is applied: handlers are
    checked for reachability and *settings* are resolved at that point. Later
    changes to ``CASTOR_*`` variables do not affect decorated functions; pass
    ``settings=`` explicitly or use :func:`run` for per-call resolution.
    """
    scope = GuardedScope(handlers, cleanup, settings=settings)

    def decorator(fn: Callable[..., T]) -> Callable[..., T | Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T | Any:
            return scope.run(functools.partial(fn, *args, **kwargs))

        return wrapper

    return decorator


def run_with_resource(
    acquire: Callable[[], R],
    use: Callable[[R], T],
    release: Callable[[R], Any],
    handlers: HandlerChain | Iterable[HandlerSpec] | None = None,
    *,
    settings: Settings | None = None,
) -> T | Any:
    """Acquire a resource, use it, and release it exactly once.

    Acquisition happens inside the scope, so its failures reach the handlers.
    ``release`` is the cleanup action and only runs when ``acquire`` returned.
    """
    acquired: list[R] = []

    def operation() -> T:
        acquired.append(acquire())
        return use(acquired[0])

    def cleanup() -> None:
        if acquired:
            release(acquired[0])

    return run(operation, handlers, cleanup, settings=settings)


__all__ = [
    "GuardedScope",
    "ScopeReport",
    "ScopeState",
    "execute",
    "guarded",
    "run",
    "run_with_resource",
]
