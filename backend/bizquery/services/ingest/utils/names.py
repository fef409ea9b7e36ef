from __future__ import annotations
import re
from pathlib import Path
from typing import Any, Dict, List


def table_name_from_file(filename: str) -> str:
    # everything before the first dot, so "sales.2024.csv" -> "sales"
    stem = Path(str(filename or "")).name.split(".")[0]
    s = re.sub(r"[^a-z0-9_]", "_", stem.lower())
    return s or "table"


def safe_col_name(x: Any) -> str:
    s = str(x if x is not None else "").strip()
    s = re.sub(r"[^\w\s]", "_", s)
    return s or "col"


def dedupe_columns(cols: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    out: List[str] = []
    for c in cols:
        base = c or "col"
        if base not in seen:
            seen[base] = 0
            out.append(base)
        else:
            seen[base] += 1
            out.append(f"{base}_{seen[base]}")
    return out
