# triage_ai/backend/app/ml/predictor.py

from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib
import numpy as np

from .. import config
from ..schemas.triage import MLResult, ModelStats

logger = logging.getLogger(__name__)


class _DictModelWrapper:
    """
    Compatibility wrapper for snapshots saved as
      {"vectorizer": CountVectorizer, "classifier": MultinomialNB}
    so they expose the same surface as a sklearn Pipeline.
    """

    def __init__(self, vectorizer, classifier):
        self.vectorizer = vectorizer
        self.classifier = classifier
        self.classes_ = getattr(classifier, "classes_", None)

    def predict(self, texts):
        return self.classifier.predict(self.vectorizer.transform(texts))

    def predict_joint_log_proba(self, texts):
        return self.classifier.predict_joint_log_proba(self.vectorizer.transform(texts))


@dataclass(frozen=True)
class ModelSnapshot:
    """A fitted model plus the stats describing where it came from."""

    model: Any
    stats: ModelStats


class ModelRegistry:
    """
    Holds the live classifier. Readers grab `current()` once per request;
    publishing swaps the whole snapshot, so a reader never sees a model
    that is half trained.
    """

    def __init__(self) -> None:
        self._snapshot: Optional[ModelSnapshot] = None
        # Serializes writers (train/load); reads don't take it
        self.write_lock = threading.Lock()

    def current(self) -> Optional[ModelSnapshot]:
        return self._snapshot

    def publish(self, snapshot: Optional[ModelSnapshot]) -> None:
        self._snapshot = snapshot

    def stats(self) -> ModelStats:
        snap = self._snapshot
        return snap.stats if snap is not None else ModelStats()


REGISTRY = ModelRegistry()


def utc_iso(ts: Optional[float] = None) -> str:
    if ts is None:
        return datetime.now(timezone.utc).isoformat()
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def save_snapshot(model: Any, path: Optional[Path] = None) -> Path:
    """Dump with joblib to a temp file, then rename over the old snapshot."""
    path = Path(path or config.MODEL_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    os.close(fd)
    try:
        joblib.dump(model, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("[ML] Saved model snapshot to %s", path)
    return path


def load_snapshot(path: Optional[Path] = None) -> Optional[ModelSnapshot]:
    """
    Load a saved model (Pipeline or the older vectorizer/classifier dict).
    Returns None when no snapshot file exists; an unreadable or unknown
    snapshot raises.
    """
    path = Path(path or config.MODEL_PATH)
    if not path.exists():
        logger.info("[ML] No classifier snapshot found at %s", path)
        return None

    obj = joblib.load(path)

    # Preferred format: sklearn Pipeline
    if hasattr(obj, "steps"):
        model = obj
    # Old format: {"vectorizer": ..., "classifier": ...}
    elif isinstance(obj, dict) and "vectorizer" in obj and "classifier" in obj:
        model = _DictModelWrapper(vectorizer=obj["vectorizer"], classifier=obj["classifier"])
    else:
        raise ValueError(f"Unrecognized model object type in {path}: {type(obj)!r}")

    stats = ModelStats(
        trained_on_count=-1,
        updated_at=utc_iso(path.stat().st_mtime),
        available=True,
    )
    logger.info("[ML] Loaded classifier snapshot from %s", path)
    return ModelSnapshot(model=model, stats=stats)


def softmax(values) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    exps = np.exp(values - values.max())
    return exps / exps.sum()


def joint_log_likelihood(model: Any, texts: List[str]) -> np.ndarray:
    """Per-class log-likelihood scores, one row per text."""
    if hasattr(model, "steps"):
        features = model[:-1].transform(texts)
        return model[-1].predict_joint_log_proba(features)
    return model.predict_joint_log_proba(texts)


def classify_snapshot(snapshot: ModelSnapshot, text: str) -> Optional[MLResult]:
    raw_classes = getattr(snapshot.model, "classes_", None)
    if raw_classes is None or len(raw_classes) == 0:
        return None
    classes: List[str] = [str(c) for c in raw_classes]

    scores = joint_log_likelihood(snapshot.model, [text or ""])[0]
    if len(scores) == 0:
        return None

    # Pseudo-probabilities: softmax over per-label log-likelihood scores
    probs = softmax(scores)
    best = int(np.argmax(probs))
    distribution: Dict[str, float] = {
        label: round(float(p), 3) for label, p in zip(classes, probs)
    }
    return MLResult(
        category=classes[best],
        confidence=round(float(probs[best]), 3),
        distribution=distribution,
    )


def classify_with_ml(text: str, registry: ModelRegistry = REGISTRY) -> Optional[MLResult]:
    """
    Classify with the live model. None means "ML unavailable" (no model
    loaded or no classes), never a verdict about the text.
    """
    snapshot = registry.current()
    if snapshot is None or not snapshot.stats.available:
        return None
    return classify_snapshot(snapshot, text)


def get_model_status(registry: ModelRegistry = REGISTRY) -> ModelStats:
    return registry.stats()
