# triage_ai/backend/app/ml/dataset.py

from __future__ import annotations

import csv
import json
from io import StringIO
from pathlib import Path
from typing import List, Optional

from .. import config
from ..schemas.triage import TrainingExample

LABELS = ["Produtivo", "Improdutivo"]


def _parse_line(line: str) -> Optional[TrainingExample]:
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict):
        return None

    text = record.get("sanitized_text")
    label = record.get("chosen_category")
    if not isinstance(text, str) or not isinstance(label, str):
        return None
    text, label = text.strip(), label.strip()
    if not text or label not in LABELS:
        return None
    return TrainingExample(text=text, label=label)


def read_training_examples(path: Optional[Path] = None) -> List[TrainingExample]:
    """
    Read {sanitized_text, chosen_category} pairs from the JSONL feedback log.
    Broken lines and records with an empty text or unknown label are dropped.
    """
    path = Path(path or config.TRAINING_LOG_PATH)
    if not path.exists():
        return []

    examples = []
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            example = _parse_line(line)
            if example is not None:
                examples.append(example)
    return examples


def dataset_to_csv(path: Optional[Path] = None) -> str:
    """
    Export the valid labelled examples as CSV: header `text,label`, CRLF line
    endings, every value quoted with embedded quotes doubled.
    """
    buf = StringIO()
    buf.write("text,label\r\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    for example in read_training_examples(path):
        writer.writerow([example.text, example.label])
    return buf.getvalue()
