"""
MindshiftR Configuration Module

Provides centralized configuration management with:
- Environment-based settings loading
- Validation of policy constants
- Secure handling of secrets
"""

from mindshift.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
