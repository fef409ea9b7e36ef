import pytest

from bizquery.agents.sql_agent.utils.schema_norm import CanonicalSchema, normalize_schema, type_group
from bizquery.agents.sql_agent.utils.types import ColumnSchema, SemanticType
from bizquery.core.errors import SchemaError


def test_catalog_shape_is_grouped_by_type():
    schema = normalize_schema([
        {"column_name": "order_date", "data_type": "DATE", "is_nullable": "NO"},
        {"column_name": "qty", "data_type": "INTEGER"},
        {"column_name": "price", "data_type": "DECIMAL(10,2)"},
        {"column_name": "name", "data_type": "VARCHAR(40)"},
        {"column_name": "active", "data_type": "BOOLEAN"},
    ])
    assert schema.names == ["order_date", "qty", "price", "name", "active"]
    assert [c.name for c in schema.columns_of("numeric")] == ["qty", "price"]
    assert [c.name for c in schema.columns_of("date")] == ["order_date"]
    assert [c.name for c in schema.columns_of("text")] == ["name"]
    assert schema.has_type("boolean")
    assert schema.get_column("order_date").is_nullable is False


def test_upload_shape_and_column_schema_objects():
    schema = normalize_schema([
        {"name": "Revenue", "type": "NUMERIC"},
        ColumnSchema(name="Region", semantic_type=SemanticType.TEXT),
    ])
    assert schema.names == ["Revenue", "Region"]
    assert schema.has_type("numeric") and schema.has_type("text")
    assert not schema.has_type("date")


def test_lookup_is_case_insensitive():
    schema = normalize_schema([{"name": "Revenue", "type": "REAL"}])
    assert schema.get_column("revenue").name == "Revenue"
    assert schema.get_column("REVENUE").quoted == '"Revenue"'
    assert schema.get_column("missing") is None


def test_canonical_schema_passes_through():
    schema = normalize_schema([{"name": "a", "type": "TEXT"}])
    assert normalize_schema(schema) is schema
    assert isinstance(schema, CanonicalSchema)


def test_empty_schema_is_rejected():
    with pytest.raises(SchemaError):
        normalize_schema([])


def test_missing_type_is_reported():
    with pytest.raises(SchemaError) as exc:
        normalize_schema([{"name": "a", "type": "TEXT"}, {"name": "b"}, {"type": "INTEGER"}])
    assert exc.value.reasons == ["Column b is missing a type", "Column 2 is missing a name"]


@pytest.mark.parametrize("bad", [None, "revenue", {"name": "a", "type": "TEXT"}, [42]])
def test_malformed_input_is_rejected(bad):
    with pytest.raises(SchemaError):
        normalize_schema(bad)


@pytest.mark.parametrize("type_name, group", [
    ("TIMESTAMP", "date"),
    ("bigint", "numeric"),
    ("double precision", "numeric"),
    ("CLOB", "text"),
    ("BLOB", None),
])
def test_type_group(type_name, group):
    assert type_group(type_name) == group
