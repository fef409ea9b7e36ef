from __future__ import annotations
import re
from typing import Callable, Iterable, List, Optional, Pattern, Tuple

from bizquery.constants.regex_constants import (
    _FETCH_FIRST, _ILIKE, _LIMIT, _SQL_SEGMENTS, _TOP_N,
)

# ---------------- Segments ---------------- #

def segments(sql: str) -> List[Tuple[bool, str]]:
    """[(is_bare, text), ...]; quoted literals and identifiers are not bare."""
    out: List[Tuple[bool, str]] = []
    for i, part in enumerate(_SQL_SEGMENTS.split(sql or "")):
        if part:
            out.append((i % 2 == 0, part))
    return out


def map_bare(sql: str, fn: Callable[[str], str]) -> str:
    return "".join(fn(text) if bare else text for bare, text in segments(sql))


def bare_text(sql: str) -> str:
    """SQL with quoted content blanked out, same length as the input."""
    return "".join(text if bare else text[0] + " " * (len(text) - 2) + text[-1] for bare, text in segments(sql))


def split_statements(sql: str) -> List[str]:
    out: List[str] = []
    buf = ""
    for bare, text in segments(sql):
        if not bare:
            buf += text
            continue
        pieces = text.split(";")
        buf += pieces[0]
        for p in pieces[1:]:
            out.append(buf)
            buf = p
    out.append(buf)
    return [s for s in (x.strip() for x in out) if s]


def top_level_index(sql: str, pattern: Pattern[str]) -> Optional[int]:
    """Offset of the first match of `pattern` outside quotes and parentheses."""
    masked = bare_text(sql)
    for m in pattern.finditer(masked):
        depth = masked[: m.start()].count("(") - masked[: m.start()].count(")")
        if depth == 0:
            return m.start()
    return None


# ---------------- Whitespace + dialect ---------------- #

def tidy_whitespace(sql: str) -> str:
    def _tidy(text: str) -> str:
        text = re.sub(r"\s+", " ", text)
        text = re.sub(r"\s+,", ",", text)
        text = re.sub(r"\(\s+", "(", text)
        return re.sub(r"\s+\)", ")", text)

    return map_bare(sql, _tidy).strip()


def normalize_to_sqlite(sql: str) -> Tuple[str, Optional[int]]:
    explicit_n = None
    s = sql

    m = _TOP_N.match(s)
    if m:
        explicit_n = int(m.group(2))
        s = _TOP_N.sub(lambda mm: f"SELECT {mm.group(1) or ''}", s, 1)

    m = _FETCH_FIRST.search(s)
    if m:
        explicit_n = int(m.group(1))
        s = _FETCH_FIRST.sub("", s)

    s = map_bare(s, lambda t: _ILIKE.sub("LIKE", t))
    return s.strip(), explicit_n


def ensure_limit(sql: str, n: int) -> str:
    s = sql.rstrip().rstrip(";")
    return s if _LIMIT.search(bare_text(s)) else f"{s} LIMIT {int(n)}"


# ---------------- Identifiers ---------------- #

def quote_identifiers(sql: str, column_names: Iterable[str]) -> str:
    """
    Replace bare, case-insensitive column references with the exact-cased,
    double-quoted name. Text inside quotes, function names (`sum(`) and
    ORDER/GROUP keywords are left alone, so running it twice changes nothing.
    """
    by_lower = {}
    for name in column_names:
        if name:
            by_lower.setdefault(name.lower(), name)
    if not by_lower:
        return sql

    alts = "|".join(re.escape(n) for n in sorted(by_lower, key=len, reverse=True))
    pattern = re.compile(rf"(?<![\w\"])({alts})(?![\w\"])", re.I)

    def _quote_bare(text: str) -> str:
        def _sub(m: re.Match) -> str:
            rest = text[m.end():]
            if re.match(r"\s*\(", rest) or re.match(r"\s+by\b", rest, re.I):
                return m.group(0)
            proper = by_lower[m.group(1).lower()]
            return '"' + proper.replace('"', '""') + '"'

        return pattern.sub(_sub, text)

    return map_bare(sql, _quote_bare)


def quote_table(sql: str, table: str) -> str:
    if not table:
        return sql
    quoted = '"' + table.replace('"', '""') + '"'
    pattern = re.compile(rf"\bFROM\s+{re.escape(table)}(?![\w\"])", re.I)
    return map_bare(sql, lambda t: pattern.sub(f"FROM {quoted}", t))


def collapse_duplicate_from(sql: str, table: str) -> str:
    if not table:
        return sql
    quoted = re.escape('"' + table.replace('"', '""') + '"')
    s = re.sub(rf"(FROM\s+{quoted})(?:\s+FROM\s+{quoted})+", r"\1", sql, flags=re.I)
    if len(re.findall(rf"\bFROM\s+{quoted}", s, flags=re.I)) > 1:
        # a dangling copy of the FROM clause at the very end
        s = re.sub(rf"\s+FROM\s+{quoted}\s*$", "", s, flags=re.I)
    return s
