"""Contexto da requisição/conexão atual para os logs.

Guarda quem está agindo (empresa, usuário e papel) além do request id, para
que logs de serviços e do feed de acompanhamento saiam com a mesma
identificação da requisição que os originou.
"""
from __future__ import annotations

from contextvars import ContextVar
from typing import Dict, Optional

_FIELDS = ("request_id", "company_id", "user_id", "user_role")

_CONTEXT: Dict[str, ContextVar[Optional[str]]] = {
    name: ContextVar(f"order_tracking_{name}", default=None) for name in _FIELDS
}


def set_request_context(**values: Optional[str]) -> None:
    """Atualiza só os campos informados; ``None`` mantém o valor atual."""
    for name, value in values.items():
        if name not in _CONTEXT:
            raise TypeError(f"unknown request context field: {name}")
        if value is not None:
            _CONTEXT[name].set(value)


def bind_viewer(viewer) -> None:
    role = getattr(viewer, "role", None)
    set_request_context(
        company_id=getattr(viewer, "company_id", None),
        user_id=getattr(viewer, "user_id", None),
        user_role=getattr(role, "value", role),
    )


def get_request_context() -> Dict[str, Optional[str]]:
    return {name: var.get() for name, var in _CONTEXT.items()}


def clear_request_context() -> None:
    for var in _CONTEXT.values():
        var.set(None)
