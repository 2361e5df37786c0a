"""
Test infrastructure shared by all Concierge test suites.
"""

from shared.tests.test_base import LaborantTest

__all__ = ["LaborantTest"]
