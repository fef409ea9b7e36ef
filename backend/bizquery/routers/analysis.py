# bizquery/routers/analysis.py
from typing import Optional

from fastapi import APIRouter, Query

from bizquery.schemas.analysis import AnalysisRequest, AnalysisResponse
from bizquery.services.analysis.analysis_service import (
    clear_history, delete_analysis, get_analysis, list_analyses, run_analysis,
)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("", response_model=AnalysisResponse)
def analyze(req: AnalysisRequest):
    return run_analysis(
        req.query_ids,
        req.analysis_request,
        analysis_type=req.analysis_type,
        dataset=req.dataset,
        narrate=req.narrate,
        model=req.model,
    )


@router.get("/history")
def analysis_history(
    dataset: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    return list_analyses(dataset, limit=limit, offset=offset)


@router.post("/cleanup")
def cleanup(dataset: Optional[str] = Query(None)):
    return clear_history(dataset)


@router.get("/{session_id}")
def analysis_session(session_id: str, dataset: Optional[str] = Query(None)):
    return get_analysis(session_id, dataset)


@router.delete("/{session_id}")
def remove_analysis(session_id: str, dataset: Optional[str] = Query(None)):
    return delete_analysis(session_id, dataset)
