"""Decorators for tracing MCP components."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

from . import get_observability_config
from .metrics import record_tool_call


def trace_tool(tool_name: str):
    """Decorator to trace tool execution and count its outcome."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                "tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()

                # Tool handlers receive their arguments as a single dict
                arguments = args[0] if args else kwargs.get("arguments")
                record_input = get_observability_config().record_tool_arguments
                if record_input and isinstance(arguments, dict):
                    _add_attributes(span, "input", arguments)

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    record_tool_call(tool_name, "exception")
                    raise

                success = not (isinstance(result, dict) and result.get("isError"))
                span.set_attribute("tool.success", success)
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                _add_tool_result_metrics(span, result)
                record_tool_call(tool_name, "success" if success else "error")

                return result

        return wrapper

    return decorator


def trace_resource(resource_type: str):
    """Lightweight decorator for resource reads."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                "resource.read.{resource_type}",
                resource_type=resource_type,
            ) as span:
                result = await func(*args, **kwargs)
                span.set_attribute("result.type", type(result).__name__)
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if tool_name.startswith("borrow_"):
        return "borrowing"
    if tool_name.startswith("booking_"):
        return "booking"
    if tool_name.startswith(("book_", "policy_")):
        return "administration"
    return "general"


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _add_tool_result_metrics(span, result: Any):
    if not isinstance(result, dict):
        return
    error = result.get("error")
    if isinstance(error, dict) and "code" in error:
        span.set_attribute("result.error_code", error["code"])
    data = result.get("data")
    if isinstance(data, dict) and "total" in data:
        span.set_attribute("result.total", data["total"])
