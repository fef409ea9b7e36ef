# bizquery/routers/ingest.py
import logging
import tempfile
from pathlib import Path

from fastapi import APIRouter, File, Form, UploadFile

from bizquery.core.errors import UploadError
from bizquery.db.sqlite import safe_dataset
from bizquery.schemas.ingest import IngestResponse
from bizquery.services.ingest.ingest_service import CSV_EXTENSIONS, EXCEL_EXTENSIONS, ingest_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post(
    "/file",
    summary="Upload a CSV or Excel file and load it into one SQLite table",
    response_model=IngestResponse,
)
async def ingest_upload(
    file: UploadFile = File(..., description="CSV or Excel file (.csv/.xlsx/.xls)"),
    dataset: str = Form("", description="Dataset name; defaults to the configured one"),
    table_name: str = Form("", description="Override the table name derived from the file name"),
    overwrite: bool = Form(False),
):
    filename = file.filename or ""
    suffix = Path(filename).suffix.lower()
    if suffix not in CSV_EXTENSIONS + EXCEL_EXTENSIONS:
        raise UploadError("Invalid file format. Please upload CSV or Excel files.")

    tmp_path: Path | None = None
    try:
        # Persist upload to a temp file
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            tmp.write(await file.read())
            tmp_path = Path(tmp.name)

        result = ingest_file(
            tmp_path,
            filename,
            dataset=dataset or None,
            table_name=table_name or None,
            overwrite=overwrite,
        )
    finally:
        if tmp_path:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove temp upload %s: %s", tmp_path, e)

    return {"filename": filename, "dataset": safe_dataset(dataset or None), **result}
