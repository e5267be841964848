"""Context managers for tracing lending operations."""

from contextlib import contextmanager

import logfire

from ..errors import LendingError


@contextmanager
def trace_lending_operation(operation: str, **attributes):
    """
    Open a ``lending.<operation>`` span.

    Lending errors are recorded on the span by code; anything else is left to
    logfire's own exception recording.
    """
    with logfire.span(
        "lending.{operation}",
        operation=operation,
        **attributes,
    ) as span:
        try:
            yield span
        except LendingError as e:
            span.set_attribute("lending.error_code", e.code)
            span.set_attribute("lending.error_status", e.status)
            raise
