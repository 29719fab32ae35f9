"""castor: structured failure propagation with guarded scopes.

Public API:
    - run(): Run an operation with ordered handlers and a cleanup action
    - execute(): Same, returning a ScopeReport instead of raising
    - GuardedScope / guarded(): Reusable scopes and the decorator form
    - run_with_resource(): Scoped acquire/use/release
    - Failure, FailureKind: Failure values and their kind taxonomy
"""

from __future__ import annotations

import logging

from castor.config import Settings, resolve_settings
from castor.errors import CastorError, ConfigurationError, InvariantViolationError
from castor.failure import Failure
from castor.handlers import Handler, HandlerChain, Shadowing, on
from castor.kinds import (
    ARITHMETIC,
    DIVISION_BY_ZERO,
    FAILURE,
    INDEX_OUT_OF_RANGE,
    LOOKUP,
    MALFORMED_INPUT,
    RESOURCE,
    VALIDATION,
    FailureKind,
    KindRegistry,
    registry,
)
from castor.runner import (
    GuardedScope,
    ScopeReport,
    ScopeState,
    execute,
    guarded,
    run,
    run_with_resource,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-scopes")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())


def define_kind(name: str, *parents: FailureKind | str) -> FailureKind:
    """Define a custom failure kind in the default registry.

    Example:
        UNDERAGE = define_kind("underage", VALIDATION)
        raise UNDERAGE("Age must be at least 18.")
    """
    return registry.define(name, *parents)


__all__ = [
    "ARITHMETIC",
    "DIVISION_BY_ZERO",
    "FAILURE",
    "INDEX_OUT_OF_RANGE",
    "LOOKUP",
    "MALFORMED_INPUT",
    "RESOURCE",
    "VALIDATION",
    "CastorError",
    "ConfigurationError",
    "Failure",
    "FailureKind",
    "GuardedScope",
    "Handler",
    "HandlerChain",
    "InvariantViolationError",
    "KindRegistry",
    "ScopeReport",
    "ScopeState",
    "Settings",
    "Shadowing",
    "define_kind",
    "execute",
    "guarded",
    "on",
    "registry",
    "resolve_settings",
    "run",
    "run_with_resource",
]
