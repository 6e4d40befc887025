"""Env-gated OpenTelemetry counters for query and migration activity.

Counters are declared up front in ``DAL_COUNTERS`` so every emitted name is
known and low-cardinality. Emission is off unless ``DAL_METRICS_ENABLED`` is
true or an OTLP exporter endpoint is configured.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from opentelemetry import metrics

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)

STATEMENTS_EXECUTED = "derby.statements.executed"
QUERIES_EXECUTED = "derby.queries.executed"
MIGRATIONS_APPLIED = "derby.migrations.applied"

DAL_COUNTERS: Dict[str, str] = {
    STATEMENTS_EXECUTED: "Statements sent to the backend",
    QUERIES_EXECUTED: "Named queries executed",
    MIGRATIONS_APPLIED: "Migrations applied",
}


def is_otel_exporter_configured() -> bool:
    """Return True when the environment points OTEL at an external collector."""
    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        return False
    if (os.getenv("OTEL_METRICS_EXPORTER") or "").strip().lower() == "none":
        return False

    endpoints = ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")
    return any((os.getenv(name) or "").strip() for name in endpoints)


def is_metrics_enabled(enabled_env_var: str) -> bool:
    """Resolve a feature flag that defaults to "on when an exporter is configured".

    An explicit value in ``enabled_env_var`` always wins; an unparseable one
    disables the feature.
    """
    if os.getenv(enabled_env_var) is None:
        return is_otel_exporter_configured()
    try:
        return get_env_bool(enabled_env_var, False) is True
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; metrics disabled.", enabled_env_var, os.getenv(enabled_env_var)
        )
        return False


def _attribute_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return value
    return str(value)


@dataclass
class CounterSet:
    """A fixed catalog of OTEL counters sharing one meter and one enable flag."""

    meter_name: str
    enabled_env_var: str
    catalog: Mapping[str, str] = field(default_factory=lambda: dict(DAL_COUNTERS))
    _counters: Dict[str, Any] = field(default_factory=dict)

    def enabled(self) -> bool:
        """Return True when emission is switched on for this set."""
        return is_metrics_enabled(self.enabled_env_var)

    def _counter(self, name: str) -> Any:
        counter = self._counters.get(name)
        if counter is None:
            counter = metrics.get_meter(self.meter_name).create_counter(
                name=name, description=self.catalog[name], unit="1"
            )
            self._counters[name] = counter
        return counter

    def increment(
        self, name: str, value: int = 1, attributes: Optional[Mapping[str, Any]] = None
    ) -> None:
        """Add ``value`` to the counter ``name``.

        Raises:
            KeyError: ``name`` is not in the catalog.
        """
        if name not in self.catalog:
            raise KeyError(f"Unknown counter '{name}'")
        if not self.enabled():
            return
        labels = {k: _attribute_value(v) for k, v in (attributes or {}).items() if v is not None}
        try:
            self._counter(name).add(int(value), labels)
        except Exception as exc:
            # Metric export must never break query execution.
            logger.debug("Counter metric emission failed for %s: %s", name, exc)


dal_metrics = CounterSet(meter_name="derby-dal", enabled_env_var="DAL_METRICS_ENABLED")
