"""
Shared utilities for Concierge: logging, health types, lifecycle, tests.
"""
