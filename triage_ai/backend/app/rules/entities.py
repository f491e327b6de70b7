# triage_ai/backend/app/rules/entities.py

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..schemas.triage import Entities
from .text import normalize

_UPPER = "A-ZÁÂÃÀÉÊÍÓÔÕÚÇ"
# One capitalized word: uppercase (accented allowed) start, then letters or ' ’ . -
_NAME_WORD = rf"[{_UPPER}](?:[^\W\d_]|['’.-])+"

_ATTACHMENT_RE = re.compile(
    r"\b(?:em\s+anexo\b|segue\s+anexo\b|segue\s+o\s+arquivo\b|anexo(?=[:\s])"
    r"|attachments?\b|attached\b|adjuntos?\b)",
    re.IGNORECASE,
)

# Ticket id rules, tried in this order; first match wins.
# Labeled and "#" tokens must carry a digit so plain words are never taken as ids.
_ID_TOKEN = r"((?=[A-Z0-9._\-/]*\d)[A-Z0-9][A-Z0-9._\-/]{3,})\b"
# A label must end at a word end ("num" inside "number" is not a label)
_NUMBER_LABEL = r"(?:n[uú]mero|n[uú]m|number|no\.|n[º°]|id)(?!\w)"
_TICKET_LABEL = (
    r"(?:protocolo|protocol|chamado|case|pedido|request|ticket"
    r"|n[uú]mero|n[uú]m|number|no\.|n[º°]|id)(?!\w)"
)
# "Protocolo: X", "Case number: X", "Request no. X", "Chamado nº X"
_LABELED_TICKET_RE = re.compile(
    r"\b" + _TICKET_LABEL + r"(?:\s*" + _NUMBER_LABEL + r")?\s*[:#]?\s*" + _ID_TOKEN,
    re.IGNORECASE,
)
_HASH_TICKET_RE = re.compile(r"(?<![\w#])#\s*" + _ID_TOKEN, re.IGNORECASE)
_PREFIXED_TICKET_RE = re.compile(r"\b([A-Z]{2,5}-\d{3,})\b")
# Checked against normalized text (lower case, no accents)
_TICKET_KEYWORD_RE = re.compile(
    r"\b(?:protocolo|protocol|chamado|ticket|pedido|request|case|numero|number|no\.|id)(?!\w)"
)
_LONG_NUMBER_RE = re.compile(r"\b\d{6,}\b")

_GREETING_RE = re.compile(
    r"\b((?i:ol[áa]|bom dia|boa tarde|boa noite|hello|hi|good morning|good afternoon"
    r"|good evening|hola|buenos d[íi]as|buenas tardes|buenas noches))\b"
    rf"[!,.]*[ \t]*({_NAME_WORD}(?:[ \t]+{_NAME_WORD}){{0,2}})?"
)

_CLOSING_RE = re.compile(
    r"^(?:att|atenciosamente|obrigad[oa]|grat[oa]|abs|abraços|obg|regards|best regards"
    r"|kind regards|thanks|thank you|cheers|saludos|gracias|cordialmente)[,!.\s]*$",
    re.IGNORECASE,
)
_SIGNATURE_NAME_RE = re.compile(rf"{_NAME_WORD}(?:\s+{_NAME_WORD}){{0,3}}")

SIGNATURE_SCAN_LINES = 6


def _clean_name(name: str) -> str:
    return name.strip().rstrip(".,")


def detect_attachment(raw: str) -> bool:
    return bool(_ATTACHMENT_RE.search(raw or ""))


def extract_ticket_id(raw: str, normalized: Optional[str] = None) -> Optional[str]:
    """
    Find a ticket/protocol identifier.

    Rules run in priority order (labeled, '#'-prefixed, LETTERS-digits) and
    the first one that matches wins. Only when none match and the normalized
    text talks about a ticket do we take the first bare run of 6+ digits.
    No match -> None.
    """
    raw = raw or ""
    for pattern in (_LABELED_TICKET_RE, _HASH_TICKET_RE, _PREFIXED_TICKET_RE):
        m = pattern.search(raw)
        if m:
            return m.group(1)

    if normalized is None:
        normalized = normalize(raw)
    if _TICKET_KEYWORD_RE.search(normalized):
        m = _LONG_NUMBER_RE.search(raw)
        if m:
            return m.group(0)
    return None


def extract_greeting(raw: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (greeting in lower case, name after it) or (None, None)."""
    m = _GREETING_RE.search(raw or "")
    if not m:
        return None, None
    name = _clean_name(m.group(2)) if m.group(2) else None
    return m.group(1).lower(), name or None


def extract_signature_name(raw: str) -> Optional[str]:
    lines = [line.strip() for line in (raw or "").splitlines()]
    lines = [line for line in lines if line]
    for line in reversed(lines[-SIGNATURE_SCAN_LINES:]):
        if _CLOSING_RE.match(line):
            continue
        if _SIGNATURE_NAME_RE.fullmatch(line):
            return _clean_name(line)
    return None


def extract_entities(raw: str, normalized: Optional[str] = None) -> Entities:
    if normalized is None:
        normalized = normalize(raw)

    greeting, name = extract_greeting(raw)
    if not name:
        name = extract_signature_name(raw)

    return Entities(
        name=name,
        greeting=greeting,
        ticket_id=extract_ticket_id(raw, normalized),
        has_attachment=detect_attachment(raw),
    )
