"""
Shared Kernel Module
====================

Shared infrastructure used by the locate tracking bounded context:
structured logging and HTTP middleware.

DO NOT add locate business logic to the shared kernel.
"""

__version__ = "1.0.0"
