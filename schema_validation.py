# Purpose: Validate request/response JSON against spec/openapi.yaml.

import os
import functools
import yaml
from jsonschema import Draft7Validator
import referencing
from referencing.jsonschema import DRAFT7

SPEC_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "spec", "openapi.yaml")
SPEC_URI = "http://qris.local/openapi.yaml"


@functools.lru_cache(maxsize=None)
def load_registry(spec_path=SPEC_PATH):
    """Loads the OpenAPI document into a registry so internal $refs resolve."""
    with open(spec_path, 'r') as f:
        spec = yaml.safe_load(f)
    resource = referencing.Resource.from_contents(spec, default_specification=DRAFT7)
    return referencing.Registry().with_resource(uri=SPEC_URI, resource=resource)


def schema_errors(data, schema_name, spec_path=SPEC_PATH):
    """Returns a list of human-readable validation errors (empty when valid)."""
    registry = load_registry(spec_path)
    target_schema = {"$ref": f"{SPEC_URI}#/components/schemas/{schema_name}"}
    validator = Draft7Validator(target_schema, registry=registry)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in error.path) or "$"
        errors.append(f"{location}: {error.message}")
    return errors


def validate_against_spec(data, schema_name, prefix=""):
    """Validates JSON against the OpenAPI spec, logging the outcome. Never raises on invalid data."""
    errors = schema_errors(data, schema_name)
    if errors:
        print(f"{prefix}[!] Spec Validation Error ({schema_name}): {'; '.join(errors)}")
        return False
    print(f"{prefix}[OK] JSON validated against {schema_name}")
    return True
