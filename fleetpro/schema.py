"""JSON schema validation for fleet documents."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from jsonschema import Draft7Validator

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"


@lru_cache(maxsize=1)
def load_schema() -> dict:
    """Load the fleet document schema bundled with the package."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def validate_document(data: Any, schema: Optional[dict] = None) -> List[str]:
    """Validate a parsed fleet document. Returns a list of error messages."""
    validator = Draft7Validator(schema or load_schema())
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        errors.append(f"Schema validation error: {error.message}")
        if error.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in error.path)}")
    return errors


def validate_fleet_file(filepath: Union[str, Path], schema: Optional[dict] = None) -> List[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        errors.extend(validate_document(normalize(data), schema))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def normalize(data: Any) -> Any:
    """Turn YAML-native dates into ISO strings so the document is plain JSON."""
    return json.loads(json.dumps(data, default=str))
