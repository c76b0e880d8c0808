"""Schema loading and match-state document validation."""

import json
from pathlib import Path

import jsonschema

from decktourney.core.errors import BackendError

MATCH_STATE_SCHEMA_PATH = Path(__file__).parent / "match_state.schema.json"


def load_schema(path: Path) -> dict:
    """Load a JSON Schema file and return as dict."""
    with open(path) as f:
        return json.load(f)


_MATCH_STATE_SCHEMA = load_schema(MATCH_STATE_SCHEMA_PATH)


def validate_match_state(document: object) -> dict:
    """Check a backend document against the match-state schema.

    Returns the document unchanged. A document that does not conform is a
    protocol error and raises BackendError.
    """
    try:
        jsonschema.validate(document, _MATCH_STATE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise BackendError(f"malformed match state: {e.message}") from e
    return document  # type: ignore[return-value]
