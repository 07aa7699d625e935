"""Health status codes and the health assessment result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class HealthStatusCode(str, Enum):
    """Health of a resource."""

    # Health assessment failed and actual health status is unknown.
    UNKNOWN = "Unknown"
    # Not healthy yet, but may still reach a healthy state.
    PROGRESSING = "Progressing"
    HEALTHY = "Healthy"
    # Suspended or paused, e.g. a suspended CronJob.
    SUSPENDED = "Suspended"
    # Failed, or could not reach a healthy state in time.
    DEGRADED = "Degraded"
    # Missing from the cluster.
    MISSING = "Missing"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HealthStatus:
    """Result of a health assessment."""

    status: HealthStatusCode
    message: str = ""


# From most healthy to least healthy.
_HEALTH_ORDER = (
    HealthStatusCode.HEALTHY,
    HealthStatusCode.SUSPENDED,
    HealthStatusCode.PROGRESSING,
    HealthStatusCode.MISSING,
    HealthStatusCode.DEGRADED,
    HealthStatusCode.UNKNOWN,
)
_RANK = {code: index for index, code in enumerate(_HEALTH_ORDER)}


def is_worse(current: HealthStatusCode, new: HealthStatusCode) -> bool:
    """Whether ``new`` is a worse health condition than ``current``.

    Codes outside the known order rank as the healthiest.
    """
    return _RANK.get(new, 0) > _RANK.get(current, 0)