# bizquery/db/sqlite.py
from __future__ import annotations
import re
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from bizquery.core.config import settings


def safe_dataset(dataset: Optional[str]) -> str:
    # normalize: lower, spaces→underscore, strip weird chars
    s = (dataset or settings.DEFAULT_DATASET).strip().lower().replace(" ", "_")
    return re.sub(r"[^a-z0-9_]+", "_", s) or settings.DEFAULT_DATASET


def db_path_for(dataset: Optional[str]) -> Path:
    return Path(settings.SQLITE_FOLDER) / f"{safe_dataset(dataset)}.db"


def get_engine_for(dataset: Optional[str]) -> tuple[Engine, Path]:
    path = db_path_for(dataset)
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}", future=True)
    return engine, path
