"""
Infrastructure layer for Concierge.
"""
