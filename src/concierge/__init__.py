"""
Concierge - twelve-factor demo service with graceful shutdown.
"""

__version__ = "0.1.0"
