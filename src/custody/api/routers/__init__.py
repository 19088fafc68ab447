"""API routers package."""

from custody.api.routers.wallet import router as wallet_router
from custody.api.routers.staking import router as staking_router

__all__ = [
    "wallet_router",
    "staking_router",
]
