# tests/conftest.py
import json

import pytest

PRODUCTIVE = [
    "erro de login no sistema, sem acesso desde ontem",
    "qual o status do protocolo <NUM>? preciso de atualizacao",
    "o sistema esta lento e com falha no acesso",
    "erro ao acessar o portal, login indisponivel",
    "preciso de suporte, o sistema apresenta erro",
    "poderia informar o prazo do meu pedido",
]
UNPRODUCTIVE = [
    "feliz natal e boas festas a toda a equipe",
    "obrigado pela ajuda, feliz natal",
    "boas festas e feliz ano novo",
    "feliz natal, boas festas, obrigado",
    "parabens pelo otimo trabalho, obrigado",
    "feliz ano novo e boas festas",
]


def write_training_log(path, rows, extra_lines=()):
    with path.open("w", encoding="utf-8") as fh:
        for text, label in rows:
            record = {
                "ts": "2026-10-19T12:00:00+00:00",
                "text_hash": "x",
                "sanitized_text": text,
                "chosen_category": label,
                "chosen_subtype": "general_question" if label == "Produtivo" else "greetings_or_thanks",
                "original_category": None,
                "original_subtype": None,
                "original_confidence": None,
                "source": "test",
            }
            fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        for line in extra_lines:
            fh.write(line + "\n")
    return path


@pytest.fixture
def labeled_rows():
    return [(t, "Produtivo") for t in PRODUCTIVE] + [(t, "Improdutivo") for t in UNPRODUCTIVE]


@pytest.fixture
def training_log(tmp_path, labeled_rows):
    return write_training_log(tmp_path / "training.jsonl", labeled_rows)
