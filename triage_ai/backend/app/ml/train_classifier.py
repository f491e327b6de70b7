# triage_ai/backend/app/ml/train_classifier.py
from __future__ import annotations

import argparse
import json
import logging
import math
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TypeVar

from sklearn.feature_extraction.text import CountVectorizer
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.naive_bayes import MultinomialNB
from sklearn.pipeline import Pipeline

from ..schemas.triage import EvalReport, ModelStats, TrainingExample
from .dataset import LABELS, read_training_examples
from .predictor import (
    REGISTRY,
    ModelRegistry,
    ModelSnapshot,
    classify_snapshot,
    load_snapshot,
    save_snapshot,
    utc_iso,
)

logger = logging.getLogger(__name__)

MIN_EVAL_EXAMPLES = 5
DEFAULT_TEST_RATIO = 0.2
DEFAULT_SEED = 42

T = TypeVar("T")


# Bag-of-words model

def build_pipeline() -> Pipeline:
    return Pipeline(
        [
            (
                "vectorizer",
                CountVectorizer(lowercase=True, strip_accents="unicode", token_pattern=r"(?u)\b\w+\b"),
            ),
            ("classifier", MultinomialNB()),
        ]
    )


def fit_model(examples: Sequence[TrainingExample]) -> Pipeline:
    model = build_pipeline()
    model.fit([e.text for e in examples], [e.label for e in examples])
    return model


# Deterministic shuffle for reproducible evaluation

def lcg(seed: int) -> Iterator[float]:
    """Linear-congruential stream in [0, 1): s = (s * 9301 + 49297) % 233280."""
    s = seed
    while True:
        s = (s * 9301 + 49297) % 233280
        yield s / 233280


def seeded_shuffle(items: Sequence[T], seed: int = DEFAULT_SEED) -> List[T]:
    """Fisher-Yates over a copy, driven by its own LCG (no global RNG state)."""
    out = list(items)
    rand = lcg(seed)
    for i in range(len(out) - 1, 0, -1):
        j = math.floor(next(rand) * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


def holdout_split(
    examples: Sequence[TrainingExample],
    test_ratio: float = DEFAULT_TEST_RATIO,
    seed: int = DEFAULT_SEED,
):
    """Return (train, test). At least one example on each side."""
    shuffled = seeded_shuffle(examples, seed)
    test_size = max(1, math.floor(len(shuffled) * test_ratio))
    test_size = min(test_size, len(shuffled) - 1)
    return shuffled[test_size:], shuffled[:test_size]


# Training

def train_from_examples(
    path: Optional[Path] = None,
    model_path: Optional[Path] = None,
    registry: ModelRegistry = REGISTRY,
) -> ModelStats:
    """
    Full batch rebuild from the feedback log.

    - Reads every valid labelled example
    - Fits a fresh CountVectorizer + MultinomialNB pipeline
    - Saves the snapshot to disk
    - Publishes it to the registry in one swap

    With no examples the registry is cleared and the model reported unavailable.
    """
    with registry.write_lock:
        examples = read_training_examples(path)
        if not examples:
            logger.info("[TRAIN] No training examples found; model unavailable.")
            registry.publish(None)
            return ModelStats(trained_on_count=0, updated_at=None, available=False)

        label_counts = Counter(e.label for e in examples)
        logger.info("[TRAIN] Loaded %d examples, label counts: %s", len(examples), dict(label_counts))

        model = fit_model(examples)
        save_snapshot(model, model_path)

        stats = ModelStats(
            trained_on_count=len(examples),
            updated_at=utc_iso(),
            available=True,
        )
        registry.publish(ModelSnapshot(model=model, stats=stats))
        logger.info("[TRAIN] Model trained on %d examples and published.", len(examples))
        return stats


def load_or_train(
    path: Optional[Path] = None,
    model_path: Optional[Path] = None,
    registry: ModelRegistry = REGISTRY,
) -> ModelStats:
    """
    Startup bootstrap: restore the saved snapshot if there is one, otherwise
    train from whatever examples exist. Load errors propagate to the caller.
    """
    with registry.write_lock:
        snapshot = load_snapshot(model_path)
        if snapshot is not None:
            registry.publish(snapshot)
            return snapshot.stats
    return train_from_examples(path, model_path, registry)


# Holdout evaluation

def eval_holdout(
    test_ratio: float = DEFAULT_TEST_RATIO,
    seed: int = DEFAULT_SEED,
    path: Optional[Path] = None,
) -> EvalReport:
    """
    Train a throwaway model on the shuffled training partition and score it
    on the holdout. Never touches the live registry.
    """
    examples = read_training_examples(path)
    if len(examples) < MIN_EVAL_EXAMPLES:
        return EvalReport(
            ok=False,
            error=f"Not enough examples for evaluation (min {MIN_EVAL_EXAMPLES}, got {len(examples)}).",
        )

    train, test = holdout_split(examples, test_ratio, seed)
    snapshot = ModelSnapshot(model=fit_model(train), stats=ModelStats(available=True))

    y_true = [e.label for e in test]
    y_pred = []
    for example in test:
        result = classify_snapshot(snapshot, example.text)
        # a model fitted on >=1 example always has classes
        y_pred.append(result.category if result else "")

    cm = confusion_matrix(y_true, y_pred, labels=LABELS)
    matrix = {
        actual: {predicted: int(cm[i][j]) for j, predicted in enumerate(LABELS)}
        for i, actual in enumerate(LABELS)
    }
    accuracy = round(float(accuracy_score(y_true, y_pred)), 3)

    logger.info(
        "[EVAL] accuracy=%.3f n_train=%d n_test=%d seed=%d", accuracy, len(train), len(test), seed
    )
    return EvalReport(
        ok=True,
        accuracy=accuracy,
        n_train=len(train),
        n_test=len(test),
        confusion_matrix=matrix,
    )


if __name__ == "__main__":
    # CLI usage: python -m triage_ai.backend.app.ml.train_classifier [--eval 0.2]
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Retrain or evaluate the triage classifier.")
    parser.add_argument("--eval", type=float, metavar="RATIO", help="run a holdout evaluation instead")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    args = parser.parse_args()

    if args.eval is not None:
        print(json.dumps(eval_holdout(args.eval, args.seed).model_dump(), indent=2))
    else:
        print("Trained:", train_from_examples().model_dump())
