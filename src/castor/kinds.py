"""Failure kinds: an open, explicitly linked taxonomy.

Kinds are plain tagged values. A kind names its parents directly, so matching
"is this failure a kind of X" walks explicit links instead of relying on class
inheritance. The taxonomy is a partial order: a kind may have several parents,
and every built-in kind descends from :data:`FAILURE`.

Example:
    OVERDRAWN = registry.define("overdrawn", VALIDATION)
    raise OVERDRAWN("Balance would drop below zero")
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from castor.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from castor.failure import Failure


@dataclass(frozen=True)
class FailureKind:
    """A named failure category with explicit ancestor links."""

    name: str
    parents: tuple[FailureKind, ...] = ()

    def ancestors(self) -> Iterator[FailureKind]:
        """Yield every transitive parent once, nearest first."""
        seen: set[FailureKind] = set()
        queue = deque(self.parents)
        while queue:
            kind = queue.popleft()
            if kind in seen:
                continue
            seen.add(kind)
            yield kind
            queue.extend(kind.parents)

    def is_a(self, other: FailureKind) -> bool:
        """Return True when *other* is this kind or one of its ancestors."""
        if self == other:
            return True
        return any(kind == other for kind in self.ancestors())

    def __call__(self, message: str, *, cause: BaseException | None = None) -> Failure:
        """Build a :class:`Failure` of this kind."""
        from castor.failure import Failure

        return Failure(self, message, cause=cause)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FailureKind({self.name!r})"


# --- Built-in taxonomy ---

FAILURE = FailureKind("failure")
ARITHMETIC = FailureKind("arithmetic", (FAILURE,))
DIVISION_BY_ZERO = FailureKind("division_by_zero", (ARITHMETIC,))
VALIDATION = FailureKind("validation", (FAILURE,))
MALFORMED_INPUT = FailureKind("malformed_input", (VALIDATION,))
LOOKUP = FailureKind("lookup", (FAILURE,))
INDEX_OUT_OF_RANGE = FailureKind("index_out_of_range", (LOOKUP,))
RESOURCE = FailureKind("resource", (FAILURE,))


class KindRegistry:
    """Open enumeration of failure kinds, addressable by name."""

    def __init__(self, root: FailureKind = FAILURE) -> None:
        self.root = root
        self._kinds: dict[str, FailureKind] = {root.name: root}

    def define(self, name: str, *parents: FailureKind | str) -> FailureKind:
        """Create and register a kind. Without parents it hangs off the root."""
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(
                "Failure kind name must be a non-empty string",
                hint="Pass a short identifier such as 'insufficient_funds'.",
            )
        name = name.strip()
        if name in self._kinds:
            raise ConfigurationError(
                f"Failure kind {name!r} is already defined",
                hint="Kind names are unique per registry; reuse the existing kind.",
            )
        resolved = tuple(self.resolve(p) for p in parents) or (self.root,)
        kind = FailureKind(name, resolved)
        self._kinds[name] = kind
        return kind

    def register(self, kind: FailureKind) -> FailureKind:
        """Register an existing kind value (and its ancestors) under its name."""
        for k in (*reversed(list(kind.ancestors())), kind):
            existing = self._kinds.get(k.name)
            if existing is not None and existing != k:
                raise ConfigurationError(
                    f"Failure kind {k.name!r} conflicts with a registered kind",
                    hint="Kind names are unique per registry.",
                )
            self._kinds[k.name] = k
        return kind

    def get(self, name: str) -> FailureKind:
        try:
            return self._kinds[name]
        except KeyError:
            known = ", ".join(sorted(self._kinds))
            raise ConfigurationError(
                f"Unknown failure kind: {name!r}",
                hint=f"Known kinds: {known}",
            ) from None

    def resolve(self, kind: FailureKind | str) -> FailureKind:
        """Accept a kind value or a registered name."""
        if isinstance(kind, FailureKind):
            return kind
        if isinstance(kind, str):
            return self.get(kind)
        raise ConfigurationError(
            f"Expected a FailureKind or kind name, got {type(kind).__name__}",
            hint="Use a kind from castor.kinds or registry.define(...).",
        )

    def __contains__(self, name: object) -> bool:
        if isinstance(name, FailureKind):
            return self._kinds.get(name.name) == name
        return name in self._kinds

    def __iter__(self) -> Iterator[FailureKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


registry = KindRegistry()
for _kind in (
    ARITHMETIC,
    DIVISION_BY_ZERO,
    VALIDATION,
    MALFORMED_INPUT,
    LOOKUP,
    INDEX_OUT_OF_RANGE,
    RESOURCE,
):
    registry.register(_kind)
del _kind


# --- Foreign exception translation ---

# Ordered most specific first; the first isinstance match wins.
_TRANSLATIONS: tuple[tuple[type[BaseException], FailureKind], ...] = (
    (ZeroDivisionError, DIVISION_BY_ZERO),
    (ArithmeticError, ARITHMETIC),
    (IndexError, INDEX_OUT_OF_RANGE),
    (LookupError, LOOKUP),
    (ValueError, MALFORMED_INPUT),
    (OSError, RESOURCE),
)


def kind_for_exception(exc: BaseException) -> FailureKind:
    """Return the kind a foreign exception translates to."""
    for exc_type, kind in _TRANSLATIONS:
        if isinstance(exc, exc_type):
            return kind
    return FAILURE


__all__ = [
    "ARITHMETIC",
    "DIVISION_BY_ZERO",
    "FAILURE",
    "INDEX_OUT_OF_RANGE",
    "LOOKUP",
    "MALFORMED_INPUT",
    "RESOURCE",
    "VALIDATION",
    "FailureKind",
    "KindRegistry",
    "kind_for_exception",
    "registry",
]
