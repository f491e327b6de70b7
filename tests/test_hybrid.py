# tests/test_hybrid.py

from datetime import datetime

import pytest

from triage_ai.backend.app.ml.hybrid import fuse_decision, ml_reasoning
from triage_ai.backend.app.ml.predictor import ModelRegistry
from triage_ai.backend.app.ml.train_classifier import train_from_examples
from triage_ai.backend.app.schemas.triage import ClassificationResult, Entities, MLResult
from triage_ai.backend.app.triage import audit_record, triage_message

MONDAY_MORNING = datetime(2026, 10, 19, 9, 0)


def rule_result(category="Produtivo", subtype="status_request", confidence=0.65):
    return ClassificationResult(
        category=category,
        subtype=subtype,
        confidence=confidence,
        reasoning="Signals: status",
        entities=Entities(),
    )


def ml_result(category, confidence):
    other = "Produtivo" if category == "Improdutivo" else "Improdutivo"
    return MLResult(
        category=category,
        confidence=confidence,
        distribution={category: confidence, other: round(1 - confidence, 3)},
    )


def test_confident_ml_overrides_rules():
    decision = fuse_decision(rule_result(), ml_result("Improdutivo", 0.8))
    assert decision.category == "Improdutivo"
    assert decision.subtype == "greetings_or_thanks"
    assert decision.confidence == 0.8
    assert decision.decision_source == "ml"
    assert decision.needs_review is False


@pytest.mark.parametrize("ml", [None, ml_result("Improdutivo", 0.69)])
def test_rules_stand_without_confident_ml(ml):
    decision = fuse_decision(rule_result(confidence=0.65), ml)
    assert decision.category == "Produtivo"
    assert decision.subtype == "status_request"
    assert decision.confidence == 0.65
    assert decision.decision_source == "rules"


def test_productive_override_keeps_productive_subtype():
    decision = fuse_decision(rule_result(), ml_result("Produtivo", 0.9))
    assert decision.subtype == "status_request"
    assert decision.confidence == 0.9


def test_productive_override_of_greeting_becomes_general_question():
    rule = rule_result("Improdutivo", "greetings_or_thanks", 0.649)
    decision = fuse_decision(rule, ml_result("Produtivo", 0.75))
    assert decision.category == "Produtivo"
    assert decision.subtype == "general_question"


@pytest.mark.parametrize("confidence, review", [(0.59, True), (0.6, False), (0.55, True)])
def test_review_flag(confidence, review):
    assert fuse_decision(rule_result(confidence=confidence), None).needs_review is review


def test_ml_reasoning_text():
    assert ml_reasoning(None) == "ML=unavailable"
    text = ml_reasoning(ml_result("Produtivo", 0.8))
    assert text.startswith("ML=Produtivo (0.8) dist=")


def test_triage_without_model_uses_rules():
    result = triage_message(
        "Bom dia, poderia informar o andamento do protocolo 2024-778812?",
        registry=ModelRegistry(),
        now=MONDAY_MORNING,
    )
    assert result.category == "Produtivo"
    assert result.subtype == "status_request"
    assert result.decision_source == "rules"
    assert result.entities.ticket_id == "2024-778812"
    assert result.entities.greeting == "bom dia"
    assert result.ml is None
    assert result.reasoning.endswith("ML=unavailable")
    assert "2024-778812" in result.suggested_reply


def test_triage_with_trained_model(training_log, tmp_path):
    registry = ModelRegistry()
    train_from_examples(training_log, tmp_path / "model.joblib", registry)

    result = triage_message("feliz natal e boas festas", registry=registry, now=MONDAY_MORNING)

    assert result.category == "Improdutivo"
    assert result.subtype == "greetings_or_thanks"
    assert result.decision_source == "ml"
    assert result.ml is not None
    assert "ML=Improdutivo" in result.reasoning


def test_audit_record_has_no_raw_text():
    text = "Segue em anexo o comprovante, protocolo AB-12345"
    result = triage_message(text, registry=ModelRegistry(), now=MONDAY_MORNING)
    record = audit_record(text, result, ua="pytest", ip="127.0.0.1")

    assert text not in str(record)
    assert record["text_len"] == len(text)
    assert len(record["text_hash"]) == 64
    assert record["ml_available"] is False
    assert record["entity_flags"] == {"has_attachment": True, "has_ticket": True, "has_name": False}


def test_english_status_request_keeps_case_id():
    result = triage_message(
        "Hello, any update on request 77881?",
        lang="en",
        registry=ModelRegistry(),
        now=MONDAY_MORNING,
    )
    assert result.subtype == "status_request"
    assert result.entities.ticket_id == "77881"
    assert "Case 77881" in result.suggested_reply
