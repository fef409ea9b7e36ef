from __future__ import annotations
import logging
from typing import Any, List, Sequence

from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema, normalize_schema
from bizquery.agents.sql_agent.utils.types import IntentSpec
from bizquery.constants.query_patterns import GENERAL_INTENT, INTENT_CATALOG

logger = logging.getLogger(__name__)


class QueryIntentClassifier:
    def __init__(self, catalog: Sequence[IntentSpec] = INTENT_CATALOG):
        self.catalog = tuple(catalog)

    @staticmethod
    def eligible(intent: IntentSpec, schema: CanonicalSchema) -> bool:
        return all(schema.has_type(t) for t in intent.required_types)

    def classify(self, query: str, schema: Any) -> List[IntentSpec]:
        """Intents whose pattern matches the text and whose column types exist; never empty."""
        canonical = normalize_schema(schema)
        text = query or ""
        found = [
            intent
            for intent in self.catalog
            if intent.pattern is not None
            and intent.pattern.search(text)
            and self.eligible(intent, canonical)
        ]
        if not found:
            found = [GENERAL_INTENT]
        logger.info("Detected query intents: %s", [i.name for i in found])
        return found


def intent_names(intents: Sequence[IntentSpec]) -> List[str]:
    return [i.name for i in intents]


def sql_hints_for(intents: Sequence[IntentSpec], schema: CanonicalSchema) -> List[str]:
    """Suggested SQL constructs, dropping ones the table's column types can't support."""
    hints: List[str] = []
    for intent in intents:
        for hint in intent.sql_hints:
            if "<date>" in hint and not schema.has_type("date"):
                continue
            if ("SUM" in hint or "AVG" in hint) and not schema.has_type("numeric"):
                continue
            if hint not in hints:
                hints.append(hint)
    return hints
