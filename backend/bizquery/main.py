import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bizquery.core.config import settings
from bizquery.core.errors import PipelineError
from bizquery.routers import analysis, ask, ingest, queries, tables

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="BizQuery API",
    version="0.3.0",
    description="Upload CSV/Excel → SQLite, then ask business questions in natural language.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_methods=["*"], allow_headers=["*"],
)

app.include_router(ingest.router)
app.include_router(tables.router)
app.include_router(ask.router)
app.include_router(queries.router)
app.include_router(analysis.router)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.info("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/healthz", tags=["meta"])
def healthz():
    return {"status": "ok"}
