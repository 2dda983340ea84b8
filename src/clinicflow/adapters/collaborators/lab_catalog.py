"""
Fixed lab test catalog.
"""

from typing import Iterable, List, Optional

from ...application.ports.services.lab_catalog import LabCatalog, LabTest


class StaticLabCatalog(LabCatalog):
    """Catalog loaded once at startup."""

    def __init__(self, tests: Iterable[LabTest]):
        self._tests = {test.test_id: test for test in tests}

    async def list_tests(self) -> List[LabTest]:
        return list(self._tests.values())

    async def find_test(self, test_id: str) -> Optional[LabTest]:
        return self._tests.get(test_id)
