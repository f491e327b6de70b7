# triage_ai/backend/app/rules/scorer.py

from __future__ import annotations

import json
import math
from typing import Dict, List, Sequence

from ..schemas.triage import ClassificationResult, Entities, SubtypeScore
from .entities import extract_entities
from .text import Signals, detect_signals, normalize

SUBTYPES = [
    "status_request",
    "support_request",
    "attachment_share",
    "greetings_or_thanks",
    "general_question",
]
# Tie-break order: productive subtypes first
PREFERRED_ORDER = [
    "status_request",
    "support_request",
    "attachment_share",
    "general_question",
    "greetings_or_thanks",
]
UNPRODUCTIVE_SUBTYPE = "greetings_or_thanks"

TIE_EPSILON = 1e-6
FALLBACK_CONFIDENCE = 0.55


def category_for(subtype: str) -> str:
    return "Improdutivo" if subtype == UNPRODUCTIVE_SUBTYPE else "Produtivo"


def softmax(values: Sequence[float]) -> List[float]:
    exps = [math.exp(v) for v in values]
    total = sum(exps)
    return [e / total for e in exps]


def raw_scores(signals: Signals) -> Dict[str, float]:
    """
    Weighted score per subtype. The constants are hand-tuned; keep them as-is.
    """
    q = signals.is_question
    return {
        "status_request": (2 if signals.status else 0)
        + (1 if q else 0)
        + (1 if signals.mentions_ticket else 0),
        "support_request": (2 if signals.support else 0) + (0.5 if q else 0),
        "attachment_share": 2 if signals.attachment else 0,
        "greetings_or_thanks": (2 if signals.greeting else 0) - (1 if q else 0),
        "general_question": 1.5 if q else 0,
    }


def score_subtypes(signals: Signals) -> List[SubtypeScore]:
    scores = raw_scores(signals)
    values = [float(scores[label]) for label in SUBTYPES]
    probs = softmax(values)
    return [
        SubtypeScore(label=label, raw_score=value, probability=prob)
        for label, value, prob in zip(SUBTYPES, values, probs)
    ]


def pick_best(scores: Sequence[SubtypeScore]) -> SubtypeScore:
    best_prob = max(s.probability for s in scores)
    candidates = [s for s in scores if abs(s.probability - best_prob) < TIE_EPSILON]
    return min(candidates, key=lambda s: PREFERRED_ORDER.index(s.label))


def build_reasoning(signals: Signals, scores: Sequence[SubtypeScore]) -> str:
    raw = {s.label: s.raw_score for s in scores}
    probs = " | ".join(f"{s.label}:{s.probability:.2f}" for s in scores)
    return " | ".join(
        [
            f"Signals: {', '.join(signals.fired()) or 'none'}",
            f"scores={json.dumps(raw)}",
            f"probs={probs}",
            f"has_question={signals.is_question}",
        ]
    )


def fallback_result(entities: Entities) -> ClassificationResult:
    return ClassificationResult(
        category="Improdutivo",
        subtype=UNPRODUCTIVE_SUBTYPE,
        confidence=FALLBACK_CONFIDENCE,
        reasoning=(
            "No signals (status/support/attachment/greeting) and no question "
            "-> fallback to Improdutivo (greetings_or_thanks)."
        ),
        entities=entities,
    )


def classify_email(raw: str) -> ClassificationResult:
    """
    Rule-based classification with entity extraction.

    All-zero evidence (no keyword of any list and not a question) skips
    scoring and returns the fixed fallback. Otherwise the raw scores go
    through softmax and the most probable subtype wins; ties inside
    TIE_EPSILON follow PREFERRED_ORDER. Category is derived from subtype.
    """
    t = normalize(raw)
    signals = detect_signals(raw, t)
    entities = extract_entities(raw, t)

    if not signals.has_keywords and not signals.is_question:
        return fallback_result(entities)

    scores = score_subtypes(signals)
    best = pick_best(scores)

    return ClassificationResult(
        category=category_for(best.label),
        subtype=best.label,
        confidence=round(best.probability, 3),
        reasoning=build_reasoning(signals, scores),
        entities=entities,
        scores=scores,
    )
