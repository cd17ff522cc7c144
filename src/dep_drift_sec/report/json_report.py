"""JSON rendering of a ScanResult (schema 1.0)."""

import json

from dep_drift_sec.models import ScanResult


def format_json_report(result: ScanResult) -> str:
    """Validate against the report schema, then dump camelCase JSON.

    Raises:
        pydantic.ValidationError: if the result does not match the schema.
    """
    validated = ScanResult.model_validate(result.model_dump(by_alias=True))
    return validated.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def format_json_error(message: str, exit_code: int) -> str:
    """Machine-readable error payload for JSON mode."""
    return json.dumps({"error": message, "exitCode": exit_code})
