from __future__ import annotations

import json

import jsonschema
import pytest

from attendance_import.config.loader import SCHEMA_PATH


@pytest.fixture()
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_accepts_full_config(schema):
    jsonschema.validate(
        {
            "chunk_size": 500,
            "max_logged_errors": 1000,
            "max_inline_errors": 25,
            "timezone": "America/Los_Angeles",
            "report_directory": "./logs",
            "database": {"dsn": "postgresql://localhost/app", "connect_timeout": 5},
        },
        schema,
    )


def test_schema_accepts_empty_config(schema):
    jsonschema.validate({}, schema)


@pytest.mark.parametrize(
    "data",
    [
        {"chunk_size": "500"},
        {"max_inline_errors": -1},
        {"database": {"hostname": "x"}},
        {"sheet_mappings": {}},
    ],
)
def test_schema_rejects_invalid(schema, data):
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(data, schema)
