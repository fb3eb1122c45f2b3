from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request


def get_gateway(request: Request) -> Any:
    """
    Canonical ReportFileGateway dependency.

    Source of truth: request.app.state.gateway, attached once during the
    app lifespan.
    """
    try:
        return request.app.state.gateway
    except AttributeError as exc:
        raise RuntimeError("Gateway not initialized on app.state (startup/lifespan not executed).") from exc


GatewayDep = Annotated[Any, Depends(get_gateway)]
