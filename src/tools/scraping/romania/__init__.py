"""Romanian listing sources."""

from .pricy_adapter import PricyAdapter
from .reselecto_adapter import ReselectoAdapter

__all__ = ["PricyAdapter", "ReselectoAdapter"]
