"""Strict decoding of classifier output into a FrictionVerdict.

The model is asked for a single JSON object but frequently wraps it in prose
or markdown fences. We pull out the first balanced top-level object and then
validate every field before anything reaches the scoring engine.
"""

import json
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from friction_intel.errors import ParseError

FRICTION_THEMES = (
    "billing_confusion",
    "integration_failures",
    "ui_confusion",
    "performance_issues",
    "missing_features",
    "training_gaps",
    "support_response_time",
    "data_quality",
    "reporting_issues",
    "access_permissions",
    "configuration_problems",
    "notification_issues",
    "workflow_inefficiency",
    "mobile_issues",
    "documentation_gaps",
)
FALLBACK_THEME = "other"
NORMAL_SUPPORT_THEME = "normal_support"
VALID_THEMES = set(FRICTION_THEMES) | {FALLBACK_THEME}

VALID_SENTIMENTS = {"frustrated", "confused", "angry", "neutral", "satisfied"}

MIN_SEVERITY = 1
MAX_SEVERITY = 5
MAX_EVIDENCE_QUOTES = 2
FIXED_CONFIDENCE = 0.8


class FrictionVerdict(BaseModel):
    """The classifier's validated verdict on one raw case."""

    is_friction: bool
    summary: str
    theme_key: str
    severity: int = Field(ge=MIN_SEVERITY, le=MAX_SEVERITY)
    sentiment: str
    root_cause: str
    evidence: list[str] = Field(default_factory=list, max_length=MAX_EVIDENCE_QUOTES)
    confidence_score: float = FIXED_CONFIDENCE
    reasoning: str


class _ClassifierPayload(BaseModel):
    """Shape the rubric asks for; anything extra is ignored."""

    model_config = ConfigDict(extra="ignore")

    is_friction: StrictBool = True
    summary: str | None = None
    reason: str | None = None
    theme_key: str | None = None
    severity: Any = None
    sentiment: str | None = None
    root_cause: str | None = None
    evidence: list[Any] | str | None = None


def extract_json_object(text: str) -> dict:
    """Return the first top-level JSON object embedded in ``text``.

    Braces inside string literals are skipped, so quotes from the case text
    that contain ``{`` or ``}`` do not confuse the scan.
    """
    if not text:
        raise ParseError("Classifier returned an empty response")

    start = text.find("{")
    while start != -1:
        resume = start + 1
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    # Objects nested in a rejected one are never candidates
                    resume = i + 1
                    candidate = text[start:i + 1]
                    try:
                        parsed = json.loads(candidate)
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = text.find("{", resume)

    raise ParseError(
        "No JSON object found in classifier response",
        {"response_excerpt": text[:200]},
    )


def clamp_severity(value: Any) -> int:
    """Coerce a classifier-provided severity into the 1-5 range."""
    if value is None:
        return MIN_SEVERITY
    if isinstance(value, bool):
        raise ParseError("Severity must be numeric", {"severity": value})
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ParseError("Severity must be numeric", {"severity": value}) from None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ParseError("Severity must be numeric", {"severity": str(value)})
    # Halves round up, so 4.5 becomes 5
    return max(MIN_SEVERITY, min(MAX_SEVERITY, math.floor(value + 0.5)))


def _normalize_evidence(raw: list[Any] | str | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    quotes = [str(q).strip() for q in raw if isinstance(q, (str, int, float)) and str(q).strip()]
    return quotes[:MAX_EVIDENCE_QUOTES]


def decode_verdict(payload: dict) -> FrictionVerdict:
    """Validate a parsed classifier payload and apply the normal-support rules."""
    try:
        raw = _ClassifierPayload.model_validate(payload)
    except ValidationError as e:
        raise ParseError(
            "Classifier response did not match the verdict shape",
            {"errors": [err["msg"] for err in e.errors()]},
        ) from None

    if not raw.is_friction:
        reason = (raw.reason or "").strip()
        return FrictionVerdict(
            is_friction=False,
            summary=(raw.summary or "").strip() or "Support request",
            theme_key=NORMAL_SUPPORT_THEME,
            severity=MIN_SEVERITY,
            sentiment=raw.sentiment if raw.sentiment in VALID_SENTIMENTS else "neutral",
            root_cause=reason or "Normal support request",
            evidence=_normalize_evidence(raw.evidence),
            reasoning=f"Non-friction: {reason or 'Normal support'}",
        )

    theme_key = (raw.theme_key or FALLBACK_THEME).strip().lower()
    if theme_key not in VALID_THEMES:
        raise ParseError("Unknown theme_key in classifier response", {"theme_key": theme_key})

    sentiment = (raw.sentiment or "neutral").strip().lower()
    if sentiment not in VALID_SENTIMENTS:
        sentiment = "neutral"

    return FrictionVerdict(
        is_friction=True,
        summary=(raw.summary or "").strip() or "Support request",
        theme_key=theme_key,
        severity=clamp_severity(raw.severity),
        sentiment=sentiment,
        root_cause=(raw.root_cause or "").strip() or "Unknown",
        evidence=_normalize_evidence(raw.evidence),
        reasoning="Classified as product friction",
    )


def parse_verdict(response_text: str) -> FrictionVerdict:
    return decode_verdict(extract_json_object(response_text))
