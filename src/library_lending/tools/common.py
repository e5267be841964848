"""
Shared plumbing for the lending tools.

Every tool takes the caller's identity (``actor_id``/``actor_role``, supplied
by the identity collaborator) and returns one of two shapes:

- success: ``{"content": [{"type": "text", "text": ...}], "data": {...}}``
- failure: ``{"isError": True, "error": {"code", "status", "message"}, "content": [...]}``
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ..errors import InvalidRequestError, LendingError, PersistenceError
from ..models.actor import Actor, Role

logger = logging.getLogger(__name__)


class ActorInput(BaseModel):
    """Identity fields carried by every tool input."""

    actor_id: int = Field(
        ...,
        description="Authenticated user id supplied by the identity provider",
        ge=1,
        examples=[5],
    )

    actor_role: Role = Field(
        default=Role.REGULAR,
        description="Authenticated user's role",
        examples=["regular", "admin"],
    )

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.actor_id, role=self.actor_role)


class PageInput(ActorInput):
    """Identity plus pagination, for list tools."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")


def format_error_response(error: LendingError) -> dict[str, Any]:
    """Format error responses consistently across all tools."""
    return {
        "isError": True,
        "error": error.to_dict(),
        "content": [{"type": "text", "text": f"{error.code}: {error.message}"}],
    }


def format_success_response(message: str, **data: Any) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "data": data}


def log_operation(operation: str, **kwargs) -> None:
    """Log operation details for audit trail."""
    logger.info(
        "Operation: %s | Details: %s", operation, " | ".join(f"{k}={v}" for k, v in kwargs.items())
    )


P = TypeVar("P", bound=BaseModel)


def run_tool(
    operation: str,
    input_model: type[P],
    arguments: dict[str, Any],
    action: Callable[[P], dict[str, Any]],
) -> dict[str, Any]:
    """
    Validate ``arguments``, run ``action`` and map failures to error payloads.

    Lending errors are expected outcomes and are logged at INFO (WARNING for
    server faults). Anything else is a bug: it is logged with its traceback and
    reported as a generic server error so the tool never crashes the server.
    """
    try:
        params = input_model.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid %s parameters: %s", operation, e)
        return format_error_response(InvalidRequestError(f"Invalid parameters: {e}"))

    log_operation(f"{operation}_start", **params.model_dump(exclude_none=True))

    try:
        response = action(params)
    except LendingError as e:
        if e.is_server_fault:
            logger.warning("%s failed - server fault: %s", operation, e.message)
        else:
            logger.info("%s failed - %s: %s", operation, e.code, e.message)
        log_operation(f"{operation}_failed", error_code=e.code, actor_id=params.actor_id)
        return format_error_response(e)
    except Exception as e:
        logger.exception("Unexpected error in %s tool", operation)
        return format_error_response(PersistenceError(f"Unexpected error: {e!s}"))

    log_operation(f"{operation}_success", actor_id=params.actor_id)
    return response
