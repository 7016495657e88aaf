"""Operational Friction Index (OFI) arithmetic.

Everything here is pure so the score can be reproduced from a snapshot's
``score_breakdown``. The shape of each step is fixed:

    weighted   = sum(severity_weight(s) * damping(theme_status))
    base       = log10(weighted + 1) * 15
    density    = friction_count / max(case_volume, 1) * 100
    multiplier = clamp(density / 5, 0.5, 1.5)
    boost      = min(15, high_severity_count * 1.5)
    score      = clamp(round((base * multiplier + boost) * amplifier), 0, 100)

Density deliberately divides a 14-day numerator by the lifetime case count.
"""

import math
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Iterable

SEVERITY_WEIGHTS = {1: 1, 2: 2, 3: 3, 4: 5, 5: 8}

TICKET_RESOLVED = "resolved"
TICKET_IN_PROGRESS = "in_progress"
TICKET_OPEN = "open"

# Most favourable first
TICKET_STATUS_RANK = (TICKET_RESOLVED, TICKET_IN_PROGRESS, TICKET_OPEN)
TICKET_DAMPING = {TICKET_RESOLVED: 0.2, TICKET_IN_PROGRESS: 0.5, TICKET_OPEN: 1.0}

BASE_SCORE_COEFFICIENT = 15
NEUTRAL_DENSITY_PCT = 5.0
MIN_DENSITY_MULTIPLIER = 0.5
MAX_DENSITY_MULTIPLIER = 1.5
HIGH_SEVERITY_THRESHOLD = 4
HIGH_SEVERITY_POINTS = 1.5
MAX_HIGH_SEVERITY_BOOST = 15

AT_RISK_STATUSES = {"churning", "at risk", "at_risk", "at-risk"}
AT_RISK_AMPLIFIER = 1.3
LOW_HEALTH_THRESHOLD = 60
LOW_HEALTH_AMPLIFIER = 1.2
LOW_NPS_THRESHOLD = 7
LOW_NPS_AMPLIFIER = 1.15

TREND_THRESHOLD_PCT = 15
TREND_IMPROVING = "improving"
TREND_STABLE = "stable"
TREND_WORSENING = "worsening"

MAX_TOP_THEMES = 5


def round_half_up(value: float) -> int:
    """Halves round toward +infinity, so 12.5 -> 13 and -2.5 -> -2."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class ScoredFriction:
    """The two fields of a friction record the score depends on."""

    theme_key: str
    severity: int


@dataclass(frozen=True)
class HealthSignal:
    health_score: int | None = None
    nps_score: int | None = None
    status: str | None = None


@dataclass
class OfiBreakdown:
    ofi_score: int
    card_count: int
    high_severity_count: int
    case_volume: int
    severity_weighted: float
    weighted_score: float
    base_score: float
    friction_density: float
    density_multiplier: float
    high_severity_boost: float
    health_amplifier: float
    raw_score: float
    theme_ticket_status: dict[str, str] = field(default_factory=dict)

    def as_breakdown(self) -> dict:
        data = asdict(self)
        for key in ("ofi_score", "high_severity_count", "case_volume"):
            data.pop(key)
        return data


def severity_weight(severity: int) -> int:
    return SEVERITY_WEIGHTS.get(severity, 1)


def best_ticket_status(statuses: Iterable[str]) -> str:
    """Most favourable status among a theme's tickets; ``open`` when there are none."""
    present = set(statuses)
    for status in TICKET_STATUS_RANK:
        if status in present:
            return status
    return TICKET_OPEN


def damping_factor(status: str | None) -> float:
    # No ticket evidence means no remediation, so no damping
    return TICKET_DAMPING.get(status or TICKET_OPEN, 1.0)


def density_multiplier(friction_density: float) -> float:
    return min(MAX_DENSITY_MULTIPLIER, max(MIN_DENSITY_MULTIPLIER, friction_density / NEUTRAL_DENSITY_PCT))


def health_amplifier(signal: HealthSignal | None) -> float:
    """Status and health checks are exclusive (status wins); NPS stacks on top."""
    if signal is None:
        return 1.0

    amplifier = 1.0
    status = (signal.status or "").strip().lower()
    if status in AT_RISK_STATUSES:
        amplifier *= AT_RISK_AMPLIFIER
    elif signal.health_score is not None and signal.health_score < LOW_HEALTH_THRESHOLD:
        amplifier *= LOW_HEALTH_AMPLIFIER

    if signal.nps_score is not None and signal.nps_score < LOW_NPS_THRESHOLD:
        amplifier *= LOW_NPS_AMPLIFIER
    return amplifier


def score_friction(
    records: list[ScoredFriction],
    case_volume: int,
    theme_statuses: dict[str, str] | None = None,
    health: HealthSignal | None = None,
) -> OfiBreakdown:
    theme_statuses = theme_statuses or {}

    severity_weighted = 0.0
    weighted_score = 0.0
    for record in records:
        weight = severity_weight(record.severity)
        severity_weighted += weight
        weighted_score += weight * damping_factor(theme_statuses.get(record.theme_key))

    card_count = len(records)
    high_severity_count = sum(1 for r in records if r.severity >= HIGH_SEVERITY_THRESHOLD)

    base_score = math.log10(weighted_score + 1) * BASE_SCORE_COEFFICIENT
    friction_density = (card_count / (case_volume or 1)) * 100
    multiplier = density_multiplier(friction_density)
    boost = min(MAX_HIGH_SEVERITY_BOOST, high_severity_count * HIGH_SEVERITY_POINTS)
    amplifier = health_amplifier(health)

    raw_score = (base_score * multiplier + boost) * amplifier
    ofi_score = min(100, max(0, round_half_up(raw_score)))

    return OfiBreakdown(
        ofi_score=ofi_score,
        card_count=card_count,
        high_severity_count=high_severity_count,
        case_volume=case_volume,
        severity_weighted=severity_weighted,
        weighted_score=weighted_score,
        base_score=base_score,
        friction_density=friction_density,
        density_multiplier=multiplier,
        high_severity_boost=boost,
        health_amplifier=amplifier,
        raw_score=raw_score,
        theme_ticket_status={
            theme: theme_statuses.get(theme, TICKET_OPEN)
            for theme in sorted({r.theme_key for r in records})
        },
    )


def compute_trend(new_score: int, prior_score: int | None) -> tuple[int | None, str]:
    """Percent change vs the prior snapshot and its direction.

    Returns (None, "stable") when there is nothing meaningful to compare to.
    """
    if not prior_score:
        return None, TREND_STABLE
    change = round_half_up((new_score - prior_score) / prior_score * 100)
    if change > TREND_THRESHOLD_PCT:
        return change, TREND_WORSENING
    if change < -TREND_THRESHOLD_PCT:
        return change, TREND_IMPROVING
    return change, TREND_STABLE


def rank_top_themes(records: list[ScoredFriction], limit: int = MAX_TOP_THEMES) -> list[dict]:
    totals: dict[str, list[int]] = defaultdict(list)
    for record in records:
        totals[record.theme_key].append(record.severity)

    themes = [
        {
            "theme_key": theme,
            "count": len(severities),
            "avg_severity": round_half_up(sum(severities) / len(severities) * 10) / 10,
        }
        for theme, severities in totals.items()
    ]
    # Stable sort: ties keep first-seen order
    themes.sort(key=lambda t: t["count"], reverse=True)
    return themes[:limit]
