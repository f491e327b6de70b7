# triage_ai/backend/app/reply/composer.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .. import config
from ..schemas.triage import Entities
from .sla import format_sla

ALLOWED_CATEGORIES = ["Produtivo", "Improdutivo"]
ALLOWED_SUBTYPES = [
    "status_request",
    "support_request",
    "attachment_share",
    "general_question",
    "greetings_or_thanks",
]
SUPPORTED_LANGS = ["pt", "en", "es"]

DEFAULT_SALUTATION = {"pt": "Olá", "en": "Hello", "es": "Hola"}

# (lang, template key) -> text. Placeholders: {greet}, {sla}, {ticket_id}
TEMPLATES = {
    ("pt", "status_with_ticket"): (
        "{greet} Recebemos sua solicitação de status. O protocolo {ticket_id} está em análise; "
        "enviaremos atualização até {sla}."
    ),
    ("pt", "status_without_ticket"): (
        "{greet} Recebemos sua solicitação de status. Poderia informar o ID/protocolo para "
        "agilizar? Enviaremos atualização até {sla}."
    ),
    ("pt", "support"): (
        "{greet} Entendi o problema. Para avançarmos, confirme por favor: (1) usuário/conta, "
        "(2) horário aproximado do erro, (3) print ou mensagem exibida. Assim que recebermos, "
        "daremos sequência."
    ),
    ("pt", "attachment_received"): (
        "{greet} Arquivo/anexo recebido com sucesso. Vamos avaliar e retornamos até {sla} "
        "com os próximos passos."
    ),
    ("pt", "record_received"): (
        "{greet} Registro recebido. Vamos avaliar e retornamos até {sla} com os próximos passos."
    ),
    ("pt", "general"): "{greet} Obrigado pela mensagem. Estamos avaliando e retornamos até {sla}.",
    ("pt", "thanks"): (
        "{greet} Agradecemos a mensagem e os bons votos! Desejamos o mesmo para você."
    ),
    ("en", "status_with_ticket"): (
        "{greet} We received your status request. Case {ticket_id} is under review; "
        "we will update you by {sla}."
    ),
    ("en", "status_without_ticket"): (
        "{greet} We received your status request. Could you share the case ID to speed "
        "things up? We will update you by {sla}."
    ),
    ("en", "support"): (
        "{greet} I understand the issue. To proceed, please confirm: (1) user/account, "
        "(2) approximate time of the error, (3) screenshot or error message. We'll proceed "
        "as soon as we receive it."
    ),
    ("en", "attachment_received"): (
        "{greet} Attachment received successfully. We'll review it and get back to you by "
        "{sla} with next steps."
    ),
    ("en", "record_received"): (
        "{greet} Record received. We'll review it and get back to you by {sla} with next steps."
    ),
    ("en", "general"): "{greet} Thanks for your message. We are reviewing it and will reply by {sla}.",
    ("en", "thanks"): "{greet} Thank you for your kind message! We wish you the same.",
    ("es", "status_with_ticket"): (
        "{greet} Recibimos su solicitud de estado. El caso {ticket_id} está en análisis; "
        "le actualizaremos hasta {sla}."
    ),
    ("es", "status_without_ticket"): (
        "{greet} Recibimos su solicitud de estado. ¿Podría indicar el ID del caso para "
        "agilizar? Le actualizaremos hasta {sla}."
    ),
    ("es", "support"): (
        "{greet} Entendí el problema. Para avanzar, confirme: (1) usuario/cuenta, (2) hora "
        "aproximada del error, (3) captura o mensaje mostrado. Seguimos cuando lo recibamos."
    ),
    ("es", "attachment_received"): (
        "{greet} Adjunto recibido correctamente. Lo revisaremos y le responderemos hasta "
        "{sla} con los próximos pasos."
    ),
    ("es", "record_received"): (
        "{greet} Registro recibido. Lo revisaremos y le responderemos hasta {sla} con los "
        "próximos pasos."
    ),
    ("es", "general"): "{greet} Gracias por su mensaje. Estamos revisando y responderemos hasta {sla}.",
    ("es", "thanks"): "{greet} ¡Gracias por su mensaje y buenos deseos! Le deseamos lo mismo.",
}


class InvalidReplyRequest(ValueError):
    """Unknown category/subtype, or a pair that breaks the taxonomy."""


def validate_reply_params(category: str, subtype: str) -> None:
    if category not in ALLOWED_CATEGORIES:
        raise InvalidReplyRequest(
            f"Invalid category '{category}'. Allowed: {', '.join(ALLOWED_CATEGORIES)}"
        )
    if subtype not in ALLOWED_SUBTYPES:
        raise InvalidReplyRequest(
            f"Invalid subtype '{subtype}'. Allowed: {', '.join(ALLOWED_SUBTYPES)}"
        )
    # Improdutivo pairs only with greetings_or_thanks, and vice versa
    if (category == "Improdutivo") != (subtype == "greetings_or_thanks"):
        raise InvalidReplyRequest(f"Subtype '{subtype}' does not belong to category '{category}'")


def resolve_lang(lang: Optional[str]) -> str:
    key = (lang or "").strip().lower()
    return key if key in SUPPORTED_LANGS else "pt"


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def template_key(category: str, subtype: str, entities: Entities) -> str:
    if category == "Improdutivo":
        return "thanks"
    if subtype == "status_request":
        return "status_with_ticket" if entities.ticket_id else "status_without_ticket"
    if subtype == "support_request":
        return "support"
    if subtype == "attachment_share":
        return "attachment_received" if entities.has_attachment else "record_received"
    return "general"


def build_reply(
    category: str,
    subtype: str,
    confidence: Optional[float] = None,
    entities: Optional[Entities] = None,
    lang: Optional[str] = None,
    sla_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Render the suggested reply for a final decision.

    `confidence` is accepted but does not influence the template yet.
    Raises InvalidReplyRequest before any lookup when the category/subtype
    pair is not part of the taxonomy.
    """
    validate_reply_params(category, subtype)
    entities = entities or Entities()
    lang = resolve_lang(lang or config.DEFAULT_LANG)
    if sla_hours is None:
        sla_hours = config.DEFAULT_SLA_HOURS

    salutation = capitalize(entities.greeting) if entities.greeting else DEFAULT_SALUTATION[lang]
    name = f", {entities.name}" if entities.name else ""
    greet = f"{salutation}{name}."

    template = TEMPLATES[(lang, template_key(category, subtype, entities))]
    return template.format(
        greet=greet,
        sla=format_sla(sla_hours, lang, now=now),
        ticket_id=entities.ticket_id or "",
    )
