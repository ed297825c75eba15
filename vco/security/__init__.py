"""Token handling for the VCO client."""

from .jwt_handler import JWTHandler

__all__ = [
    "JWTHandler",
]
