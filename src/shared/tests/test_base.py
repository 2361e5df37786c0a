"""
Base class for all Concierge component tests.

Provides standardized test structure with:
- Automatic test discovery (test_* methods)
- Native async/await support
- Integrated SystemReporter
- Standalone entry point (run_as_main) alongside pytest collection

Under pytest the class is collected like any Test* class (async tests run
through pytest-asyncio); setup_method() builds the reporter.
"""

import asyncio
import inspect
import json
import sys
import time
from dataclasses import asdict, dataclass
from typing import List, Optional

from shared.reporter.system_reporter import SystemReporter


@dataclass
class IndividualTestResult:
    """Result from a single test_* method."""

    name: str
    status: str
    duration: float
    error: Optional[str] = None


class LaborantTest:
    """
    Base class for component tests with async support.

    Required class attributes:
        component_name: str - Name of component being tested
        test_category: str - Category: "unit", "integration", or "e2e"

    Example:
        class TestRegistry(LaborantTest):
            component_name = "concierge"
            test_category = "unit"

            async def test_track(self):
                assert len(ConnectionRegistry()) == 0

        if __name__ == "__main__":
            TestRegistry.run_as_main()
    """

    component_name: str = "unknown"
    test_category: str = "unit"

    reporter: SystemReporter

    # ================================================================
    # PYTEST INTEGRATION
    # ================================================================

    def setup_method(self, method=None) -> None:
        """Create the integrated reporter before each test."""
        self.reporter = SystemReporter(
            name=f"tests.{self.__class__.__name__}",
            verbose=1,
        )

    # ================================================================
    # STANDALONE EXECUTION (Do not override)
    # ================================================================

    def _discover_tests(self) -> List[tuple]:
        """Discover all test_* methods, sorted by name."""
        tests = []
        for name in dir(self):
            if name.startswith("test_"):
                attr = getattr(self, name)
                if callable(attr):
                    tests.append((name, attr))
        return sorted(tests)

    def _execute_test(self, test_name: str, test_method) -> IndividualTestResult:
        """Execute one test method (sync or async) and capture result."""
        start_time = time.time()
        self.setup_method()

        try:
            if inspect.iscoroutinefunction(test_method):
                asyncio.run(test_method())
            else:
                test_method()

            return IndividualTestResult(
                name=test_name,
                status="pass",
                duration=time.time() - start_time,
            )

        except AssertionError as e:
            return IndividualTestResult(
                name=test_name,
                status="fail",
                duration=time.time() - start_time,
                error=str(e) or "Assertion failed",
            )

        except Exception as e:
            return IndividualTestResult(
                name=test_name,
                status="error",
                duration=time.time() - start_time,
                error=f"{type(e).__name__}: {str(e)}",
            )

    def run_tests(self) -> List[IndividualTestResult]:
        """Run all discovered tests and return their results."""
        return [
            self._execute_test(name, method)
            for name, method in self._discover_tests()
        ]

    @classmethod
    def run_as_main(cls) -> None:
        """
        Standard entry point for standalone test execution.

        Call this in if __name__ == "__main__" block. Prints a JSON summary
        and exits non-zero if any test failed.
        """
        instance = cls()
        results = instance.run_tests()

        failed = [r for r in results if r.status != "pass"]
        summary = {
            "test_file": cls.__name__,
            "component": cls.component_name,
            "category": cls.test_category,
            "total": len(results),
            "passed": len(results) - len(failed),
            "failed": len(failed),
            "duration": sum(r.duration for r in results),
            "tests": [asdict(r) for r in results],
        }
        print(json.dumps(summary, indent=2))

        sys.exit(0 if not failed else 1)
