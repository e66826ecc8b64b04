"""
Client-side checks for a portal submission.
"""
from typing import Any, Dict, Iterable, List, Mapping

from models.project_models import FieldType


def _get(field: Any, key: str, default=None):
    if isinstance(field, Mapping):
        return field.get(key, default)
    return getattr(field, key, default)


def validate_submission(fields: Iterable[Any], values: Dict[str, Any]) -> List[str]:
    """
    Check required fields against the submitted values.

    File fields need at least one file; text, URL and code fields need a
    non-blank value. Section headers carry no input. Returns one
    "<label> is required" message per missing field, in form order.
    """
    errors = []
    for field in fields:
        if not _get(field, "is_required", False):
            continue

        field_type = _get(field, "field_type")
        value = values.get(str(_get(field, "id")))

        if field_type in FieldType.FILE_TYPES:
            if not value:
                errors.append(f"{_get(field, 'label')} is required")
        elif field_type in FieldType.TEXT_TYPES:
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{_get(field, 'label')} is required")

    return errors
