"""
Parser for the analysis model's reply.

The model is asked for a single JSON object but nothing enforces it, so
parse_analysis accepts any text and always returns a fully populated
ReportAnalysis. A reply that cannot be used yields the default
"failed to generate structure" record instead of an exception; a failed
model call is a different path handled by the pipeline.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List

from bloodlens.services.report_state import ReportAnalysis

logger = logging.getLogger(__name__)

FAILED_SUMMARY = "Analysis failed to generate structure."

VALID_FLAGS = ("normal", "high", "low")
VALID_RISK_LEVELS = ("low", "moderate", "high", "critical")

NUTRITION_LIST_KEYS = ("breakfast", "lunch", "dinner", "snacks", "avoid")
LIFESTYLE_KEYS = ("exercise", "sleep", "stress")

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def default_nutrition() -> Dict[str, Any]:
    return {"focus": "", "breakfast": [], "lunch": [], "dinner": [], "snacks": [], "avoid": []}


def default_lifestyle() -> Dict[str, str]:
    return {"exercise": "", "sleep": "", "stress": ""}


def default_analysis() -> ReportAnalysis:
    return ReportAnalysis(
        summary=FAILED_SUMMARY,
        recommendation="",
        overall_score=5,
        risk_level="moderate",
        tests=[],
        health_goals=[],
        nutrition=default_nutrition(),
        lifestyle=default_lifestyle(),
        supplements=[],
        future_predictions=[],
        medication_alerts=[],
    )


def strip_code_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw or "").strip()


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _score(value: Any) -> float:
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 5
    # bool is an int subclass, not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 5
    if math.isnan(value) or math.isinf(value):
        return 5
    return min(10, max(1, value))


def _normalize_test(item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict):
        return None
    flag = _as_text(item.get("flag")).lower()
    return {
        "test": _as_text(item.get("test")),
        "value": item.get("value"),
        "unit": _as_text(item.get("unit")),
        "range": _as_text(item.get("range")),
        "flag": flag if flag in VALID_FLAGS else "normal",
        "explanation": _as_text(item.get("explanation")),
        "rootCauses": _as_text(item.get("rootCauses")),
        "advice": _as_text(item.get("advice")),
    }


def _normalize_supplement(item: Any) -> Dict[str, Any]:
    if isinstance(item, str):
        return {"name": item, "reason": ""}
    if not isinstance(item, dict):
        return None
    supplement = {"name": _as_text(item.get("name")), "reason": _as_text(item.get("reason"))}
    for extra in ("dose", "duration"):
        if item.get(extra):
            supplement[extra] = _as_text(item[extra])
    return supplement


def _normalize_nutrition(value: Any) -> Dict[str, Any]:
    nutrition = default_nutrition()
    if not isinstance(value, dict):
        return nutrition
    nutrition["focus"] = _as_text(value.get("focus"))
    for key in NUTRITION_LIST_KEYS:
        nutrition[key] = [_as_text(v) for v in _as_list(value.get(key))]
    return nutrition


def _normalize_lifestyle(value: Any) -> Dict[str, str]:
    lifestyle = default_lifestyle()
    if not isinstance(value, dict):
        return lifestyle
    for key in LIFESTYLE_KEYS:
        lifestyle[key] = _as_text(value.get(key))
    return lifestyle


def parse_analysis(raw: str) -> ReportAnalysis:
    """Turn the model's raw reply into a complete ReportAnalysis. Never raises."""
    text = strip_code_fences(raw)

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"[ReportParser] JSON parse error, using defaults: {e}")
        logger.error(f"[ReportParser] Raw content that failed to parse: {text[:500]}")
        return default_analysis()

    if not isinstance(parsed, dict):
        logger.error(f"[ReportParser] Expected a JSON object, got {type(parsed).__name__}")
        return default_analysis()

    defaults = default_analysis()
    risk_level = _as_text(parsed.get("riskLevel"), defaults.risk_level).lower()

    return ReportAnalysis(
        summary=_as_text(parsed.get("summary"), defaults.summary),
        recommendation=_as_text(parsed.get("recommendation")),
        overall_score=_score(parsed.get("overallScore")),
        risk_level=risk_level if risk_level in VALID_RISK_LEVELS else defaults.risk_level,
        tests=[t for t in map(_normalize_test, _as_list(parsed.get("tests"))) if t],
        health_goals=[_as_text(g) for g in _as_list(parsed.get("healthGoals"))],
        nutrition=_normalize_nutrition(parsed.get("nutrition")),
        lifestyle=_normalize_lifestyle(parsed.get("lifestyle")),
        supplements=[s for s in map(_normalize_supplement, _as_list(parsed.get("supplements"))) if s],
        future_predictions=[p for p in _as_list(parsed.get("futurePredictions")) if isinstance(p, dict)],
        medication_alerts=[m for m in _as_list(parsed.get("medicationAlerts")) if isinstance(m, dict)],
    )
