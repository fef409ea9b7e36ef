from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AnalysisRequest(BaseModel):
    query_ids: List[str] = Field(..., description="Saved query IDs to analyze together")
    analysis_request: str = Field(..., description="What to look for, in plain language")
    analysis_type: Optional[str] = Field(
        None, description="trend_analysis, comparative_analysis, predictive_analysis or pattern_analysis"
    )
    dataset: Optional[str] = None
    narrate: bool = Field(False, description="Ask the language model for a short written summary")
    model: Optional[str] = None


class AnalysisResponse(BaseModel):
    success: bool = True
    session_id: str
    analysis_type: str
    results: Dict[str, Any]
