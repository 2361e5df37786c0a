"""
Configuration for Concierge.
"""

from concierge.config.settings import Settings, load_config

__all__ = ["Settings", "load_config"]
