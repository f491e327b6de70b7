# triage_ai/backend/app/schemas/triage.py

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..reply.sla import MAX_SLA_HOURS

Category = Literal["Produtivo", "Improdutivo"]
Subtype = Literal[
    "status_request",
    "support_request",
    "attachment_share",
    "general_question",
    "greetings_or_thanks",
]
Lang = Literal["pt", "en", "es"]


class Entities(BaseModel):
    name: Optional[str] = None
    greeting: Optional[str] = None
    ticket_id: Optional[str] = None
    has_attachment: bool = False


class SubtypeScore(BaseModel):
    label: Subtype
    raw_score: float
    probability: float = Field(ge=0.0, le=1.0)


class ClassificationResult(BaseModel):
    category: Category
    subtype: Subtype
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    entities: Entities
    # Empty when the no-signal fallback short-circuits scoring
    scores: List[SubtypeScore] = Field(default_factory=list)


class MLResult(BaseModel):
    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    distribution: Dict[str, float]


class TrainingExample(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    label: Category


class ModelStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    # -1 when the model came from a saved snapshot instead of a fresh fit
    trained_on_count: int = 0
    updated_at: Optional[str] = None
    available: bool = False


class EvalReport(BaseModel):
    ok: bool
    error: Optional[str] = None
    accuracy: Optional[float] = None
    n_train: Optional[int] = None
    n_test: Optional[int] = None
    confusion_matrix: Optional[Dict[str, Dict[str, int]]] = None


class HybridDecision(BaseModel):
    category: Category
    subtype: Subtype
    confidence: float
    needs_review: bool
    decision_source: Literal["rules", "ml"]


# API payloads

class ClassifyRequest(BaseModel):
    text: str
    lang: Optional[str] = None
    sla_hours: Optional[float] = Field(default=None, le=MAX_SLA_HOURS)


class TriageResponse(BaseModel):
    category: Category
    subtype: Subtype
    confidence: float
    suggested_reply: str
    reasoning: str
    needs_review: bool
    decision_source: Literal["rules", "ml"]
    entities: Entities
    ml: Optional[MLResult] = None


class FeedbackRequest(BaseModel):
    text: str
    chosen_category: Category
    chosen_subtype: Subtype
    original_category: Optional[str] = None
    original_subtype: Optional[str] = None
    confidence: Optional[float] = None


class ComposeRequest(BaseModel):
    # Plain strings so the composer can reject bad values itself
    category: str
    subtype: str
    confidence: Optional[float] = None
    entities: Optional[Entities] = None
    lang: Optional[str] = None
    sla_hours: Optional[float] = Field(default=None, le=MAX_SLA_HOURS)


class ComposeResponse(BaseModel):
    suggested_reply: str
    entities: Entities
