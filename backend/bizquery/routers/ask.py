# bizquery/routers/ask.py
from fastapi import APIRouter

from bizquery.agents.sql_agent.sql_agent import answer_question, execute_raw
from bizquery.schemas.ask import AskRequest, AskResponse, ExecuteRequest, ExecuteResponse

router = APIRouter(prefix="/ask", tags=["ask"])


@router.post("", response_model=AskResponse)
def ask(req: AskRequest):
    return answer_question(
        req.query,
        dataset=req.dataset,
        table_name=req.table_name,
        model=req.model,
    )


@router.post("/execute", response_model=ExecuteResponse)
def execute(req: ExecuteRequest):
    return execute_raw(req.sql, dataset=req.dataset)
