"""
Shared Core Module
==================

Event system, configuration, and lifecycle helpers.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Lifecycle
from .lifecycle import (
    register_cleanup_handler,
    unregister_cleanup_handler,
    run_cleanup_handlers,
)

# Configuration
from .configuration import (
    ConfigManager,
    SystemConfig,
    StorageConfig,
    BackendConfig,
    GateConfig,
    BootstrapConfig,
    get_config,
    validate_backend_config,
    ValidationLevel,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Lifecycle
    "register_cleanup_handler",
    "unregister_cleanup_handler",
    "run_cleanup_handlers",
    # Configuration
    "ConfigManager",
    "SystemConfig",
    "StorageConfig",
    "BackendConfig",
    "GateConfig",
    "BootstrapConfig",
    "get_config",
    "validate_backend_config",
    "ValidationLevel",
]
