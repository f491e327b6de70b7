# triage_ai/backend/app/ml/hybrid.py

from __future__ import annotations

import json
from typing import Optional

from ..schemas.triage import ClassificationResult, HybridDecision, MLResult

ML_OVERRIDE_THRESHOLD = 0.7
REVIEW_THRESHOLD = 0.6


def fuse_decision(rule: ClassificationResult, ml: Optional[MLResult]) -> HybridDecision:
    """
    Combine the rule result with the ML result.

    A confident ML result (>= ML_OVERRIDE_THRESHOLD) replaces the category
    and the confidence; the subtype is then realigned so the taxonomy still
    holds (Improdutivo <-> greetings_or_thanks). An absent ML result counts
    the same as a low-confidence one: the rule decision stands.
    needs_review is raised below REVIEW_THRESHOLD whatever the source.
    """
    category, subtype, confidence = rule.category, rule.subtype, rule.confidence
    source = "rules"

    if ml is not None and ml.confidence >= ML_OVERRIDE_THRESHOLD:
        category = ml.category
        if category == "Improdutivo":
            subtype = "greetings_or_thanks"
        elif subtype == "greetings_or_thanks":
            subtype = "general_question"
        confidence = ml.confidence
        source = "ml"

    return HybridDecision(
        category=category,
        subtype=subtype,
        confidence=confidence,
        needs_review=confidence < REVIEW_THRESHOLD,
        decision_source=source,
    )


def ml_reasoning(ml: Optional[MLResult]) -> str:
    if ml is None:
        return "ML=unavailable"
    return f"ML={ml.category} ({ml.confidence}) dist={json.dumps(ml.distribution)}"
