"""Read-only query selectors."""

from commission_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
