"""
models.py — Engine Data Model
==============================

Value objects passed between the simulation components and handed to the
caller's callbacks. Everything except Buoy is immutable once created.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

# Buoy health states
GOOD = "good"
WARNING = "warning"
CRITICAL = "critical"

STATUSES = (GOOD, WARNING, CRITICAL)
SEVERITIES = ("low", "medium", "high", "critical")
INSIGHT_KINDS = ("warning", "recommendation", "forecast")
IMPACTS = ("low", "medium", "high")

# Parameter name used for cross-parameter anomalies
CORRELATION = "correlation"


@dataclass
class Buoy:
    """
    One monitored point on the dam.

    Attributes:
        id (str): Stable identifier, e.g. "buoy-1".
        sensors (dict[str, float]): Current reading per parameter.
        status (str): good | warning | critical.
        alerts (list[str]): Active alert descriptions, no duplicates.
        last_update (datetime | None): Time of the last completed tick.
        attributes (dict): Fields the engine never simulates (name, zone,
            location). Merged in between ticks by the caller.
    """

    id: str
    sensors: dict = field(default_factory=dict)
    status: str = GOOD
    alerts: list = field(default_factory=list)
    last_update: Optional[datetime] = None
    attributes: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Buoy":
        """
        Build a Buoy from the REST layer's JSON shape.

        ``sensors``, ``status`` and ``alerts`` map directly; every other key
        (name, zone, location ...) lands in ``attributes``.
        """
        known = {"id", "sensors", "status", "alerts", "lastUpdate"}
        return cls(
            id=str(data["id"]),
            sensors=dict(data.get("sensors") or {}),
            status=data.get("status", GOOD),
            alerts=list(data.get("alerts") or []),
            attributes={k: v for k, v in data.items() if k not in known},
        )

    def copy(self) -> "Buoy":
        """Independent copy safe to hand outside the engine."""
        # Malformed sensor payloads are carried through untouched
        sensors = dict(self.sensors) if isinstance(self.sensors, dict) else self.sensors
        return Buoy(
            id=self.id,
            sensors=sensors,
            status=self.status,
            alerts=list(self.alerts or ()),
            last_update=self.last_update,
            attributes=dict(self.attributes or {}),
        )


@dataclass(frozen=True)
class ParameterSample:
    buoy_id: str
    parameter: str
    value: float
    timestamp: datetime


@dataclass(frozen=True)
class Snapshot:
    """All parameters of one buoy captured at one tick."""

    timestamp: datetime
    values: Mapping[str, float]

    def __post_init__(self):
        # Freeze a private copy so later edits to the source dict don't leak in
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, parameter: str, default: Any = None) -> Any:
        return self.values.get(parameter, default)

    def samples(self, buoy_id: str) -> tuple:
        """Expand into one ParameterSample per parameter."""
        return tuple(
            ParameterSample(buoy_id, name, value, self.timestamp)
            for name, value in self.values.items()
        )


@dataclass(frozen=True)
class Anomaly:
    buoy_id: str
    parameter: str
    severity: str
    description: str
    timestamp: datetime
    likelihood: float

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {self.severity!r}")
        object.__setattr__(self, "likelihood", min(1.0, max(0.0, float(self.likelihood))))

    @property
    def is_alert(self) -> bool:
        """High and critical anomalies become active alerts on the buoy."""
        return self.severity in ("high", "critical")


@dataclass(frozen=True)
class TrendResult:
    direction: str
    rate: float
    confidence: float


STABLE_TREND = TrendResult("stable", 0.0, 0.0)


@dataclass(frozen=True)
class Insight:
    """
    Predictive insight produced by one rule for one buoy.

    ``id`` embeds buoy, rule and timestamp so callers can deduplicate.
    """

    id: str
    buoy_id: str
    kind: str
    title: str
    description: str
    confidence: float
    timeframe: str
    impact: str
    action_required: bool
    rule: str = ""
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to a plain dict for the persistence/notification layers."""
        return {
            "id": self.id,
            "buoyId": self.buoy_id,
            "type": self.kind,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "timeframe": self.timeframe,
            "impact": self.impact,
            "actionRequired": self.action_required,
        }


@dataclass(frozen=True)
class TickResult:
    """Everything one tick produced."""

    timestamp: datetime
    buoys: tuple
    anomalies: tuple = ()
    insights: tuple = ()
    errors: int = 0
