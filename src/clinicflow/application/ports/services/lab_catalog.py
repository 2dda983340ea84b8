"""
Lab test catalog interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union


@dataclass(frozen=True)
class LabTest:
    """Orderable lab test profile."""

    test_id: str
    name: str
    price: Union[int, float, Decimal]
    category: str = ""


class LabCatalog(ABC):
    """Read-only lab test catalog."""

    @abstractmethod
    async def list_tests(self) -> List[LabTest]:
        """List orderable tests."""
        pass

    @abstractmethod
    async def find_test(self, test_id: str) -> Optional[LabTest]:
        """Find a test by ID."""
        pass
