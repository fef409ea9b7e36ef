import re

# Noise around model output
_SQL_FENCE = re.compile(r"```(?:\s*(?:sql|sqlite|postgresql))?", re.I)
_THINK_TAGS = re.compile(r"<\s*(think|thinking|reasoning)\s*>.*?<\s*/\s*\1\s*>", re.I | re.S)
_SQL_LABEL = re.compile(r"^\s*(?:sql(?:\s+query)?|query)\s*:\s*", re.I)

# Statement shape
_START_OK = re.compile(r"^\s*SELECT\b", re.I)
_FROM_CLAUSE = re.compile(r"\bFROM\b", re.I)
_BROKEN_FROM = re.compile(r'_FROM"|"FROM\b')
_SELECT_LIST = re.compile(r"\bSELECT\b(.*?)\bFROM\b", re.I | re.S)
_LIMIT = re.compile(r"\bLIMIT\b", re.I)
_ORDER_BY = re.compile(r"\bORDER\s+BY\b", re.I)
_GROUP_BY = re.compile(r"\bGROUP\s+BY\b", re.I)
_TAIL_CLAUSE = re.compile(r"\b(?:HAVING|ORDER\s+BY|LIMIT)\b", re.I)

# Splits SQL into 'string literals', "quoted identifiers" and bare text
_SQL_SEGMENTS = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")")

# Dialect normalization (SQLite)
_TOP_N = re.compile(r"^\s*SELECT\s+(DISTINCT\s+)?TOP\s+(\d+)\s+", re.I)
_FETCH_FIRST = re.compile(r"\bFETCH\s+(?:FIRST|NEXT)\s+(\d+)\s+ROWS?\s+ONLY\b", re.I)
_ILIKE = re.compile(r"\bILIKE\b", re.I)

# Domain patterns
_CURRENCY_LITERAL = re.compile(r"\$\s?(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?")
_QUOTED_CURRENCY = re.compile(r"^(['\"])\s*\$\s?(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?\s*\1$")
_BARE_COMPARISON = re.compile(
    r"(\bWHERE|\bAND|\bOR|\bHAVING|\()\s*(>=|<=|<>|!=|>|<|=)\s*(-?\d+(?:\.\d+)?)",
    re.I,
)
_GROUP_BY_MONTH = re.compile(r"\bGROUP\s+BY\s+(?:\"month\"|'month'|month)(?![\w\"'])", re.I)
_MONTH_ALIAS = re.compile(r"\bAS\s+[\"']?month[\"']?(?![\w\"'])", re.I)
_SELECT_HEAD = re.compile(r"^\s*SELECT\s+(DISTINCT\s+)?", re.I)

# Value parsing
_NUM_LIKE = re.compile(r"^\s*-?\d+(?:\.\d+)?\s*$")
_CURRENCY_LIKE = re.compile(r"^\s*-?\s*\$?\s*-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?\s*$")

# Row-count phrases in questions ("top 5", "first 3")
_NUM_PHRASE = re.compile(r"\b(?:first|top)\s+(\d+)\b", re.I)
