"""
Shared test helpers.
"""
