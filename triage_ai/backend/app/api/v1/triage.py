# triage_ai/backend/app/api/v1/triage.py

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from ...feedback import log_classification, record_feedback
from ...ml.dataset import dataset_to_csv
from ...ml.predictor import get_model_status
from ...ml.train_classifier import DEFAULT_SEED, DEFAULT_TEST_RATIO, eval_holdout, train_from_examples
from ...reply.composer import InvalidReplyRequest, build_reply
from ...schemas.triage import (
    ClassifyRequest,
    ComposeRequest,
    ComposeResponse,
    Entities,
    FeedbackRequest,
    ModelStats,
    TriageResponse,
)
from ...triage import audit_record, triage_message

router = APIRouter(tags=["triage"])


@router.post("/classify", response_model=TriageResponse)
def classify(payload: ClassifyRequest, request: Request):
    text = (payload.text or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="Provide the message text in the 'text' field.")

    result = triage_message(text, lang=payload.lang, sla_hours=payload.sla_hours)

    client_ip = request.client.host if request.client else ""
    log_classification(audit_record(text, result, request.headers.get("user-agent", ""), client_ip))
    return result


@router.post("/feedback")
def feedback(payload: FeedbackRequest):
    if not payload.text.strip():
        raise HTTPException(
            status_code=400,
            detail="Required fields: text, chosen_category, chosen_subtype.",
        )
    record_feedback(
        payload.text,
        payload.chosen_category,
        payload.chosen_subtype,
        original_category=payload.original_category,
        original_subtype=payload.original_subtype,
        confidence=payload.confidence,
    )
    return {"ok": True}


@router.post("/compose", response_model=ComposeResponse)
def compose(payload: ComposeRequest):
    entities = payload.entities or Entities()
    try:
        reply = build_reply(
            payload.category,
            payload.subtype,
            payload.confidence if payload.confidence is not None else 0.75,
            entities,
            lang=payload.lang,
            sla_hours=payload.sla_hours,
        )
    except InvalidReplyRequest as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ComposeResponse(suggested_reply=reply, entities=entities)


@router.get("/model/status", response_model=ModelStats)
def model_status():
    return get_model_status()


@router.post("/model/train")
def model_train():
    """
    Full retrain from the feedback log. Declared sync so FastAPI runs the fit
    in its threadpool; classify keeps serving the previous snapshot meanwhile.
    """
    stats = train_from_examples()
    return {"ok": True, **stats.model_dump()}


@router.get("/model/eval")
def model_eval(ratio: float = DEFAULT_TEST_RATIO, seed: int = DEFAULT_SEED):
    ratio = max(0.05, min(0.9, ratio))
    report = eval_holdout(ratio, seed)
    if not report.ok:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=report.model_dump(exclude_none=True),
        )
    return report.model_dump()


@router.get("/dataset/csv")
def dataset_csv():
    return Response(
        content=dataset_to_csv(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="dataset_sanitizado.csv"'},
    )
