from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from brainflow.content.schema import CONTENT_MODELS, ContentVariant
from brainflow.errors import ContentValidationError, ValidationErrorKind

logger = logging.getLogger(__name__)


_KIND_BY_PYDANTIC_TYPE: dict[str, ValidationErrorKind] = {
    "missing": ValidationErrorKind.missing_field,
    "literal_error": ValidationErrorKind.invalid_enum_member,
    "enum": ValidationErrorKind.invalid_enum_member,
    "greater_than": ValidationErrorKind.out_of_range,
    "greater_than_equal": ValidationErrorKind.out_of_range,
    "less_than": ValidationErrorKind.out_of_range,
    "less_than_equal": ValidationErrorKind.out_of_range,
    "too_short": ValidationErrorKind.out_of_range,
    "too_long": ValidationErrorKind.out_of_range,
    "out_of_range": ValidationErrorKind.out_of_range,
    "referential_mismatch": ValidationErrorKind.referential_mismatch,
}


def _error_path(error: Mapping[str, Any]) -> str:
    parts = [str(p) for p in error.get("loc", ())]
    # Cross-field checks run on the whole model and name their field in ctx.
    ctx_field = (error.get("ctx") or {}).get("field")
    if ctx_field:
        parts.append(str(ctx_field))
    return ".".join(parts)


def _first_error(exc: ValidationError) -> ContentValidationError:
    error = exc.errors(include_url=False)[0]
    kind = _KIND_BY_PYDANTIC_TYPE.get(error["type"], ValidationErrorKind.wrong_type)
    return ContentValidationError(kind, error["msg"], path=_error_path(error))


def validate_content(raw: object) -> ContentVariant:
    """Turn an untrusted record into exactly one typed content variant.

    Dispatches on the `type` discriminant, then applies that variant's field
    checks. The first failing constraint is raised as `ContentValidationError`;
    values are never coerced or clamped. The input is not mutated.
    """

    if not isinstance(raw, Mapping):
        raise ContentValidationError(
            ValidationErrorKind.unknown_variant,
            f"content record must be an object, got {type(raw).__name__}",
        )

    tag = raw.get("type")
    model = CONTENT_MODELS.get(tag) if isinstance(tag, str) else None
    if model is None:
        known = ",".join(sorted(CONTENT_MODELS))
        raise ContentValidationError(
            ValidationErrorKind.unknown_variant,
            f"unknown content type {tag!r} (known: {known})",
            path="type",
        )

    try:
        return model.model_validate(raw)  # type: ignore[return-value]
    except ValidationError as e:
        raise _first_error(e) from e


def try_validate_content(raw: object, *, source: str = "") -> ContentVariant | None:
    """Validate, or log and return None so the caller can fall back to an empty state."""

    try:
        return validate_content(raw)
    except ContentValidationError as e:
        logger.warning("Rejected content record%s: %s", f" ({source})" if source else "", e)
        return None


def validate_many(records: Iterable[object], *, source: str = "") -> list[ContentVariant]:
    out: list[ContentVariant] = []
    for raw in records:
        content = try_validate_content(raw, source=source)
        if content is not None:
            out.append(content)
    return out
