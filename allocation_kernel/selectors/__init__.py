"""Read-only selectors for the allocation kernel."""

from allocation_kernel.selectors.allocation_selector import AllocationSelector
from allocation_kernel.selectors.base import BaseSelector

__all__ = [
    "AllocationSelector",
    "BaseSelector",
]
