"""
Depot Shared Kernel
===================

Session-layer building blocks shared by every Depot front end.

Architecture:
- core: EventBus, configuration, lifecycle
- infrastructure: Technical adapters (local store, hosted backend)
- domain: Session persistence
"""

__version__ = "1.0.0"

__all__ = []
