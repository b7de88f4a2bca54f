"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_request_id: ContextVar[str] = ContextVar("request_id", default="")
_provider: ContextVar[str] = ContextVar("provider", default="")
_component: ContextVar[str] = ContextVar("component", default="")


def set_log_context(
    request_id: Optional[str] = None,
    provider: Optional[str] = None,
    component: Optional[str] = None,
) -> None:
    if request_id is not None:
        _request_id.set(request_id)
    if provider is not None:
        _provider.set(provider)
    if component is not None:
        _component.set(component)


def get_log_context() -> Dict[str, str]:
    return {
        "request_id": _request_id.get(),
        "provider": _provider.get(),
        "component": _component.get(),
    }


def clear_log_context() -> None:
    _request_id.set("")
    _provider.set("")
    _component.set("")
