"""
Reporter package - centralized logging for Concierge components.
"""

from shared.reporter.system_reporter import SystemReporter

__all__ = ["SystemReporter"]
