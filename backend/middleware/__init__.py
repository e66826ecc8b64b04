"""
AssetDrop - Middleware Package
"""
from .rate_limit import (
    limiter,
    rate_limit,
    RateLimits,
    rate_limit_exceeded_handler,
)

__all__ = [
    'limiter',
    'rate_limit',
    'RateLimits',
    'rate_limit_exceeded_handler',
]
