from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from lead_import.config.loader import SCHEMA_PATH

"""Config schema contract test (shipped config_schema.json)."""


@pytest.fixture()
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_config_schema_valid_example(schema, sample_config_yaml: str):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), schema)


def test_config_schema_minimal_example(schema):
    jsonschema.validate({}, schema)
    jsonschema.validate({"target": {"profile": "driver"}}, schema)


@pytest.mark.parametrize(
    "config",
    [
        {"batch_size": 500},
        {"batch_size": 0},
        {"target": {"profile": "truck"}},
        {"assignment": {"mode": "random"}},
        {"assignment": {"mode": "round_robin", "members": [{"id": ""}]}},
        {"actor": {"id": "a", "name": "b", "email": "c"}},
        {"fetch_timeout": 0},
        {"unknown": 1},
    ],
)
def test_config_schema_rejects(schema, config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, schema)
