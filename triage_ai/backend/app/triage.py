# triage_ai/backend/app/triage.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from .feedback import sha256
from .ml.hybrid import fuse_decision, ml_reasoning
from .ml.predictor import REGISTRY, ModelRegistry, classify_with_ml
from .reply.composer import build_reply
from .rules.scorer import classify_email
from .schemas.triage import TriageResponse


def triage_message(
    text: str,
    lang: Optional[str] = None,
    sla_hours: Optional[float] = None,
    registry: ModelRegistry = REGISTRY,
    now: Optional[datetime] = None,
) -> TriageResponse:
    """
    Rules (with entities) + ML, fused into one decision; the reply is built
    from the fused category/subtype/confidence and the rule entities.
    """
    rule = classify_email(text)
    ml = classify_with_ml(text, registry)
    decision = fuse_decision(rule, ml)

    suggested_reply = build_reply(
        decision.category,
        decision.subtype,
        decision.confidence,
        rule.entities,
        lang=lang,
        sla_hours=sla_hours,
        now=now,
    )

    return TriageResponse(
        category=decision.category,
        subtype=decision.subtype,
        confidence=decision.confidence,
        suggested_reply=suggested_reply,
        reasoning=f"{rule.reasoning} | {ml_reasoning(ml)}",
        needs_review=decision.needs_review,
        decision_source=decision.decision_source,
        entities=rule.entities,
        ml=ml,
    )


def audit_record(text: str, result: TriageResponse, ua: str = "", ip: str = "") -> Dict[str, Any]:
    ml = result.ml
    return {
        "text_hash": sha256(text),
        "text_len": len(text),
        "category": result.category,
        "subtype": result.subtype,
        "confidence": result.confidence,
        "ml_available": ml is not None,
        "ml_category": ml.category if ml else None,
        "ml_confidence": ml.confidence if ml else None,
        "entity_flags": {
            "has_attachment": result.entities.has_attachment,
            "has_ticket": bool(result.entities.ticket_id),
            "has_name": bool(result.entities.name),
        },
        "ua": ua,
        "ip": ip,
    }
