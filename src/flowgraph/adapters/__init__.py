"""Runtime adapters."""

from .base import RuntimeAdapter, RuntimeFetchError
from .vnext import VNextRuntimeAdapter

__all__ = ["RuntimeAdapter", "RuntimeFetchError", "VNextRuntimeAdapter"]
