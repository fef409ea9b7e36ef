from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PipelineConfig:
    """Fixed keyword tables shared by inference, table selection and SQL repair."""

    # Type inference
    numeric_name_hints: Tuple[str, ...] = ("price", "cost", "total", "amount", "sum", "qty", "quantity")
    date_name_hints: Tuple[str, ...] = ("date", "time", "day", "month", "year")
    numeric_hint_ratio: float = 0.7
    date_ratio: float = 0.9
    min_date_length: int = 6

    # Table relevance
    table_word_min_length: int = 4
    sample_cell_min_length: int = 4
    table_word_score: int = 10
    sample_cell_score: int = 15
    column_name_score: int = 5
    business_column_score: int = 3
    business_column_keywords: Tuple[str, ...] = (
        "product", "sale", "order", "customer", "price", "quantity", "inventory", "item",
    )
    business_table_keywords: Tuple[str, ...] = (
        "sales", "order", "product", "customer", "inventory", "business",
    )
    internal_tables: Tuple[str, ...] = (
        "tables_metadata", "saved_queries", "migrations", "analysis_sessions",
        "uploaded_files", "sqlite_sequence",
    )

    # SQL safety
    disallowed_keywords: Tuple[str, ...] = (
        "insert", "update", "delete", "drop", "alter", "create",
        "truncate", "exec", "execute", "union",
    )
    disallowed_tokens: Tuple[str, ...] = ("--",)

    # SQL repair
    aggregate_functions: Tuple[str, ...] = ("COUNT", "SUM", "AVG", "MAX", "MIN")
    date_functions: Tuple[str, ...] = ("strftime", "extract", "to_char", "date_trunc", "julianday")
    amount_column_hints: Tuple[str, ...] = ("price", "total", "amount")
    superlative_cues: Tuple[str, ...] = ("highest", "most", "top", "maximum")
    month_names: Tuple[str, ...] = (
        "january", "february", "march", "april", "may", "june", "july",
        "august", "september", "october", "november", "december",
    )


DEFAULT_CONFIG = PipelineConfig()
