from enum import Enum
from typing import Iterable, Optional

from opentelemetry.trace import Span
from opentelemetry.trace.status import Status, StatusCode

from opentelemetry.instrumentation.graphql_resolver.names import (
    AttributeName,
    ErrorCode,
)


class CanonicalCode(Enum):
    OK = 0
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    INTERNAL = 13


def error_code(error) -> Optional[str]:
    """Returns the classification code stored in `error.extensions`, if any"""
    extensions = getattr(error, "extensions", None)
    if not extensions:
        return None
    return extensions.get("code")


def classify_errors(errors: Optional[Iterable]) -> Optional[CanonicalCode]:
    """
    Maps the errors of a response to a single canonical code. Internal errors
    take precedence over validation errors regardless of their position in
    `errors`; any other code is UNKNOWN. Returns None when there are no errors
    """
    if not errors:
        return None

    codes = {error_code(error) for error in errors}
    if ErrorCode.INTERNAL_SERVER_ERROR in codes:
        return CanonicalCode.INTERNAL
    if ErrorCode.GRAPHQL_VALIDATION_FAILED in codes:
        return CanonicalCode.INVALID_ARGUMENT
    return CanonicalCode.UNKNOWN


def set_canonical_status(
    span: Span, code: CanonicalCode, description: Optional[str] = None
) -> None:
    # OK stays implicit, the span keeps its unset status
    if code is CanonicalCode.OK:
        return

    span.set_status(Status(StatusCode.ERROR, description))
    span.set_attribute(AttributeName.STATUS_CODE, code.name)
