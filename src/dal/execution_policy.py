"""Degradation policies for batch execution and parameter binding."""

from enum import Enum
from typing import Optional, Union

from common.config.env import get_env_bool, get_env_str


class StatementErrorPolicy(str, Enum):
    """What a multi-statement batch does when one statement fails."""

    ABORT = "abort"
    CONTINUE = "continue"


DEFAULT_STATEMENT_ERROR_POLICY = {
    "sqlite": StatementErrorPolicy.ABORT,
    "postgres": StatementErrorPolicy.CONTINUE,
}


def parse_statement_error_policy(value: Union[str, StatementErrorPolicy]) -> StatementErrorPolicy:
    """Parse ``abort``/``continue`` (``-on-error`` suffix tolerated)."""
    if isinstance(value, StatementErrorPolicy):
        return value
    cleaned = str(value).strip().lower().replace("_", "-")
    if cleaned.endswith("-on-error"):
        cleaned = cleaned[: -len("-on-error")]
    try:
        return StatementErrorPolicy(cleaned)
    except ValueError:
        raise ValueError(
            f"Invalid statement error policy '{value}'. Allowed values: abort, continue"
        )


def resolve_statement_error_policy(
    provider: str, configured: Optional[Union[str, StatementErrorPolicy]] = None
) -> StatementErrorPolicy:
    """Return the explicit policy, else SQL_STATEMENT_ERROR_POLICY, else the provider default."""
    if configured is not None:
        return parse_statement_error_policy(configured)
    from_env = get_env_str("SQL_STATEMENT_ERROR_POLICY")
    if from_env:
        return parse_statement_error_policy(from_env)
    return DEFAULT_STATEMENT_ERROR_POLICY.get(provider, StatementErrorPolicy.ABORT)


def resolve_binding_fallback(configured: Optional[bool] = None) -> bool:
    """Return whether SQLite may re-run a statement unbound after a binding error."""
    if configured is not None:
        return configured
    return bool(get_env_bool("SQL_BINDING_FALLBACK", False))
