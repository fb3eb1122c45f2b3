# health/router.py
from fastapi import APIRouter

from core.deps import GatewayDep

router = APIRouter(tags=["health"])


@router.get("/health")
def health(gateway: GatewayDep):
    # Liveness only; never touches the store
    return {"ok": True, "strategy": gateway.strategy_name}
