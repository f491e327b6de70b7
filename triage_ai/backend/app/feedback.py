# triage_ai/backend/app/feedback.py

from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from . import config

logger = logging.getLogger(__name__)

# Applied in order; later patterns see the earlier placeholders
_SANITIZERS = [
    (re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE), "<EMAIL>"),
    (re.compile(r"\+?\d[\d\s().-]{7,}\d"), "<PHONE>"),
    (re.compile(r"\b\d{8,}\b"), "<NUM>"),
    (re.compile(r"\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b"), "<CPF>"),
    (re.compile(r"\b\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}\b"), "<CNPJ>"),
    (re.compile(r"\bhttps?://\S+", re.IGNORECASE), "<URL>"),
]


def sanitize_for_training(text: Optional[str]) -> str:
    """Replace e-mails, phones, long numbers, CPF/CNPJ and URLs with placeholders."""
    if not text:
        return ""
    for pattern, placeholder in _SANITIZERS:
        text = pattern.sub(placeholder, text)
    return text.strip()


def sha256(text: Optional[str]) -> str:
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def record_feedback(
    text: str,
    chosen_category: str,
    chosen_subtype: str,
    original_category: Optional[str] = None,
    original_subtype: Optional[str] = None,
    confidence: Optional[float] = None,
    path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Append one sanitized, labelled example to the training log."""
    if not text or not chosen_category or not chosen_subtype:
        raise ValueError("Required fields: text, chosen_category, chosen_subtype.")

    record = {
        "ts": _now_iso(),
        "text_hash": sha256(text),
        "sanitized_text": sanitize_for_training(text),
        "chosen_category": chosen_category,
        "chosen_subtype": chosen_subtype,
        "original_category": original_category or None,
        "original_subtype": original_subtype or None,
        "original_confidence": confidence,
        "source": "ui",
    }
    append_jsonl(Path(path or config.TRAINING_LOG_PATH), record)
    return record


def log_classification(payload: Dict[str, Any], path: Optional[Path] = None) -> None:
    """
    Append an audit record (hash only, never the raw text). A failed write
    is logged and does not fail the request.
    """
    record = {"ts": _now_iso(), **payload}
    try:
        append_jsonl(Path(path or config.CLASSIFICATION_LOG_PATH), record)
    except OSError:
        logger.exception("[API] Could not write classification log")
