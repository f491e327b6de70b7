# tests/test_ml_training.py

import csv
import random
from io import StringIO

from triage_ai.backend.app.ml.dataset import dataset_to_csv, read_training_examples
from triage_ai.backend.app.ml.predictor import (
    ModelRegistry,
    classify_snapshot,
    classify_with_ml,
    get_model_status,
    load_snapshot,
)
from triage_ai.backend.app.ml.train_classifier import (
    eval_holdout,
    holdout_split,
    lcg,
    load_or_train,
    seeded_shuffle,
    train_from_examples,
)

from conftest import write_training_log


def test_malformed_records_are_dropped(tmp_path):
    path = write_training_log(
        tmp_path / "training.jsonl",
        [("erro no login", "Produtivo")],
        extra_lines=[
            "not json at all",
            '{"sanitized_text": "", "chosen_category": "Produtivo"}',
            '{"sanitized_text": "ola", "chosen_category": "Outro"}',
            '{"sanitized_text": 12, "chosen_category": "Produtivo"}',
            "[1, 2, 3]",
        ],
    )
    examples = read_training_examples(path)
    assert [(e.text, e.label) for e in examples] == [("erro no login", "Produtivo")]


def test_missing_log_means_no_examples(tmp_path):
    assert read_training_examples(tmp_path / "missing.jsonl") == []


def test_untrained_registry_returns_no_result():
    registry = ModelRegistry()
    assert classify_with_ml("erro no login", registry) is None
    status = get_model_status(registry)
    assert status.available is False
    assert status.trained_on_count == 0
    assert status.updated_at is None


def test_train_and_classify(training_log, tmp_path):
    registry = ModelRegistry()
    model_path = tmp_path / "model.joblib"

    stats = train_from_examples(training_log, model_path, registry)

    assert stats.available is True
    assert stats.trained_on_count == 12
    assert stats.updated_at is not None
    assert model_path.exists()
    assert get_model_status(registry) == stats

    result = classify_with_ml("erro de login e falha no sistema", registry)
    assert result.category == "Produtivo"
    assert 0.5 <= result.confidence <= 1.0
    assert set(result.distribution) == {"Produtivo", "Improdutivo"}
    assert abs(sum(result.distribution.values()) - 1.0) < 0.01

    assert classify_with_ml("feliz natal e boas festas", registry).category == "Improdutivo"


def test_training_without_examples_clears_model(tmp_path, training_log):
    registry = ModelRegistry()
    train_from_examples(training_log, tmp_path / "model.joblib", registry)

    stats = train_from_examples(tmp_path / "empty.jsonl", tmp_path / "model.joblib", registry)

    assert stats.available is False
    assert registry.current() is None
    assert classify_with_ml("erro", registry) is None


def test_retrain_swaps_snapshot_without_touching_old_one(training_log, tmp_path):
    registry = ModelRegistry()
    train_from_examples(training_log, tmp_path / "model.joblib", registry)
    old = registry.current()

    train_from_examples(training_log, tmp_path / "model.joblib", registry)

    assert registry.current() is not old
    # a reader still holding the old snapshot keeps getting answers from it
    assert classify_snapshot(old, "erro no sistema").category == "Produtivo"


def test_load_or_train_prefers_saved_snapshot(training_log, tmp_path):
    model_path = tmp_path / "model.joblib"
    train_from_examples(training_log, model_path, ModelRegistry())

    registry = ModelRegistry()
    stats = load_or_train(tmp_path / "empty.jsonl", model_path, registry)

    assert stats.available is True
    assert stats.trained_on_count == -1
    assert classify_with_ml("feliz natal", registry).category == "Improdutivo"


def test_load_or_train_falls_back_to_training(training_log, tmp_path):
    registry = ModelRegistry()
    stats = load_or_train(training_log, tmp_path / "model.joblib", registry)
    assert stats.trained_on_count == 12
    assert load_snapshot(tmp_path / "model.joblib").stats.trained_on_count == -1


def test_lcg_first_value():
    assert next(lcg(42)) == 206659 / 233280


def test_seeded_shuffle_is_deterministic_and_a_permutation():
    items = list(range(20))
    first = seeded_shuffle(items, 42)
    assert first == seeded_shuffle(items, 42)
    assert sorted(first) == items
    assert items == list(range(20))


def test_seeded_shuffle_leaves_global_rng_alone():
    random.seed(1234)
    expected = random.random()
    random.seed(1234)
    seeded_shuffle(list(range(50)), 7)
    assert random.random() == expected


def test_holdout_split_sizes(training_log):
    examples = read_training_examples(training_log)
    train, test = holdout_split(examples, 0.2, 42)
    assert len(test) == 2
    assert len(train) == 10
    train2, test2 = holdout_split(examples, 0.01, 42)
    assert len(test2) == 1


def test_eval_requires_five_examples(tmp_path, labeled_rows):
    path = write_training_log(tmp_path / "few.jsonl", labeled_rows[:4])
    report = eval_holdout(0.2, 42, path)
    assert report.ok is False
    assert "min 5" in report.error
    assert report.accuracy is None


def test_eval_is_reproducible(training_log):
    first = eval_holdout(0.2, 42, training_log)
    second = eval_holdout(0.2, 42, training_log)

    assert first.ok is True
    assert first == second
    assert first.n_train == 10
    assert first.n_test == 2
    assert 0.0 <= first.accuracy <= 1.0
    matrix = first.confusion_matrix
    assert set(matrix) == {"Produtivo", "Improdutivo"}
    assert sum(sum(row.values()) for row in matrix.values()) == first.n_test


def test_csv_export_escapes_quotes(tmp_path):
    path = write_training_log(
        tmp_path / "training.jsonl",
        [('He said "hi"', "Produtivo"), ("feliz natal", "Improdutivo")],
        extra_lines=["{broken"],
    )
    output = dataset_to_csv(path)

    assert output.startswith("text,label\r\n")
    assert '"He said ""hi""","Produtivo"\r\n' in output

    rows = list(csv.DictReader(StringIO(output, newline="")))
    assert rows == [
        {"text": 'He said "hi"', "label": "Produtivo"},
        {"text": "feliz natal", "label": "Improdutivo"},
    ]


def test_csv_export_of_empty_store(tmp_path):
    assert dataset_to_csv(tmp_path / "missing.jsonl") == "text,label\r\n"
