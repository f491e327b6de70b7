# triage_ai/backend/app/rules/text.py

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List

# Keyword lists are written in normalized form (lower-case, no accents)
STATUS_WORDS = [
    "status",
    "andamento",
    "atualizacao",
    "progresso",
    "prazo",
    "previsao",
    "posicao",
    "update",
    "progress",
]
SUPPORT_WORDS = [
    "erro",
    "bug",
    "falha",
    "suporte",
    "acesso",
    "login",
    "indisponivel",
    "lento",
    "timeout",
    "error",
    "support",
    "soporte",
]
ATTACHMENT_WORDS = ["anexo", "segue anexo", "em anexo", "attachment", "attached", "adjunto"]
GREETING_WORDS = [
    "feliz natal",
    "boas festas",
    "parabens",
    "obrigado",
    "agradeco",
    "agradecimento",
    "feliz ano novo",
    "bom dia",
    "boa tarde",
    "boa noite",
    "merry christmas",
    "happy new year",
    "thank you",
    "congratulations",
    "gracias",
    "feliz navidad",
]

# Checked against the raw text so punctuation survives
_QUESTION_MARK_RE = re.compile(r"[?¿]")
_POLITE_REQUEST_RE = re.compile(
    r"\b(poderia|pode informar|pode verificar|consegue informar|qual o status|gentileza"
    r"|could you|can you|puede indicar|podría)\b",
    re.IGNORECASE,
)

_TICKET_MENTION_RE = re.compile(
    r"\b(chamado|solicitacao|pedido|protocolo|protocol|request|case|ticket)\b"
)

_WHITESPACE_RE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize(text: str) -> str:
    """Lower-case, drop accents and collapse whitespace. None -> ''."""
    return _WHITESPACE_RE.sub(" ", strip_diacritics((text or "").lower())).strip()


def hit_any(text: str, words: Iterable[str]) -> List[str]:
    """Return the keywords found in `text` as whole words (case-insensitive)."""
    found = []
    for word in words:
        if re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE):
            found.append(word)
    return found


def has_question(raw: str) -> bool:
    raw = raw or ""
    return bool(_QUESTION_MARK_RE.search(raw) or _POLITE_REQUEST_RE.search(raw))


def mentions_ticket(normalized: str) -> bool:
    return bool(_TICKET_MENTION_RE.search(normalized or ""))


@dataclass
class Signals:
    """Keyword hits per semantic signal plus the question heuristic."""

    status: List[str] = field(default_factory=list)
    support: List[str] = field(default_factory=list)
    attachment: List[str] = field(default_factory=list)
    greeting: List[str] = field(default_factory=list)
    is_question: bool = False
    mentions_ticket: bool = False

    @property
    def has_keywords(self) -> bool:
        return bool(self.status or self.support or self.attachment or self.greeting)

    def fired(self) -> List[str]:
        names = []
        if self.status:
            names.append("status")
        if self.support:
            names.append("support")
        if self.attachment:
            names.append("attachment")
        if self.greeting:
            names.append("greeting")
        if self.is_question:
            names.append("question")
        if self.mentions_ticket:
            names.append("ticket/protocol")
        return names


def detect_signals(raw: str, normalized: str | None = None) -> Signals:
    t = normalize(raw) if normalized is None else normalized
    return Signals(
        status=hit_any(t, STATUS_WORDS),
        support=hit_any(t, SUPPORT_WORDS),
        attachment=hit_any(t, ATTACHMENT_WORDS),
        greeting=hit_any(t, GREETING_WORDS),
        is_question=has_question(raw),
        mentions_ticket=mentions_ticket(t),
    )
