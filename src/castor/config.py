"""Configuration: frozen Settings resolved from overrides, environment and .env.

Resolution order (lowest to highest precedence):
    defaults < ``CASTOR_*`` environment variables < explicit overrides

Example:
    settings = resolve_settings(cleanup_failure_policy="discard")
    run(operation, handlers, cleanup, settings=settings)
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from castor.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

load_dotenv()

ENV_PREFIX = "CASTOR_"

CleanupFailurePolicy = Literal["chain", "discard"]


class Settings(BaseModel):
    """Immutable runner settings.

    Attributes:
        cleanup_failure_policy: What happens to the superseded outcome when the
            cleanup action raises. ``"chain"`` attaches the superseded failure
            as the cleanup failure's cause; ``"discard"`` drops it.
        translate_exceptions: Offer foreign exceptions (``ZeroDivisionError``,
            ``ValueError``...) to handlers as translated Failures.
        strict_handlers: Reject handler lists containing unreachable handlers
            instead of logging a warning.
    """

    cleanup_failure_policy: CleanupFailurePolicy = "chain"
    translate_exceptions: bool = True
    strict_handlers: bool = False

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("cleanup_failure_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        """Accept surrounding whitespace and any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


def _coerce_bool(v: str) -> bool:
    """Convert string to boolean using common conventions."""
    return v.strip().lower() in {"1", "true", "yes", "on"}


def load_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Read ``CASTOR_*`` variables for known Settings fields.

    Unknown ``CASTOR_*`` names are ignored so unrelated tooling can share the
    prefix.
    """
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}
    for key, value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        info = Settings.model_fields.get(field_name)
        if info is None:
            continue
        config[field_name] = _coerce_bool(value) if info.annotation is bool else value
    return config


def resolve_settings(
    *, environ: Mapping[str, str] | None = None, **overrides: Any
) -> Settings:
    """Resolve Settings from the environment and keyword overrides."""
    merged = {**load_env(environ), **overrides}
    try:
        return Settings(**merged)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(part) for part in first.get("loc", ())) or "settings"
        raise ConfigurationError(
            f"Invalid setting {loc!r}: {first.get('msg', 'validation failed')}",
            hint=_field_hint(loc),
        ) from e


def _field_hint(field: str) -> str | None:
    hints = {
        "cleanup_failure_policy": "Use 'chain' or 'discard' "
        f"(env {ENV_PREFIX}CLEANUP_FAILURE_POLICY).",
        "translate_exceptions": "Use a boolean "
        f"(env {ENV_PREFIX}TRANSLATE_EXCEPTIONS=1|0).",
        "strict_handlers": f"Use a boolean (env {ENV_PREFIX}STRICT_HANDLERS=1|0).",
    }
    if field in hints:
        return hints[field]
    known = ", ".join(Settings.model_fields)
    return f"Known settings: {known}"


__all__ = ["ENV_PREFIX", "CleanupFailurePolicy", "Settings", "load_env", "resolve_settings"]
