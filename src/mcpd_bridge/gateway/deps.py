"""Shared dependencies for gateway routes.

Route modules import dependencies from here rather than reading
app.state themselves.

Usage with Annotated:
    from mcpd_bridge.gateway.deps import TranslatorDep

    @router.get("/servers")
    async def list_servers(translator: TranslatorDep) -> Any:
        ...
"""

from __future__ import annotations

__all__ = [
    "get_config",
    "get_translator",
    "ConfigDep",
    "TranslatorDep",
]

from typing import Annotated, Any, Callable

from fastapi import Depends, HTTPException, Request

from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.config import GatewayConfig


def _create_state_getter(
    attr_name: str,
    type_hint: str,
    error_detail: str,
) -> Callable[[Request], Any]:
    """Create a dependency that reads a value from app.state (503 if unset).

    Args:
        attr_name: Attribute name on app.state.
        type_hint: Type name used in the getter's docstring.
        error_detail: Message for the 503 response.
    """

    def getter(request: Request) -> Any:
        value = getattr(request.app.state, attr_name, None)
        if value is None:
            raise HTTPException(status_code=503, detail=error_detail)
        return value

    getter.__name__ = f"get_{attr_name}"
    getter.__doc__ = f"Get {type_hint} from app.state.\n\nRaises HTTPException 503 if not available."
    return getter


get_translator: Callable[[Request], "ProtocolTranslator"] = _create_state_getter(
    "translator",
    "ProtocolTranslator",
    "Translator not available. Gateway may still be starting.",
)

get_config: Callable[[Request], "GatewayConfig"] = _create_state_getter(
    "config",
    "GatewayConfig",
    "Config not available. Gateway may still be starting.",
)


TranslatorDep = Annotated[ProtocolTranslator, Depends(get_translator)]
ConfigDep = Annotated[GatewayConfig, Depends(get_config)]
