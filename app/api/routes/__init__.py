# API Routes Module
from app.api.routes import (
    admin,
    checkout,
    webhooks,
)

__all__ = [
    "admin",
    "checkout",
    "webhooks",
]
