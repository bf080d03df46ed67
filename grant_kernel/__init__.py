"""
Budget BASE Kernel

Shared foundation for the grant/budget approval core:
- Typed exception hierarchy
- Structured JSON logging
- Injectable clock
- SQLAlchemy declarative base, engine and generic repository
- Pure approval and permission value objects
"""

__version__ = "0.1.0"
