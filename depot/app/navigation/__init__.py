from .router import BusRouter, Router
from .session_gate import (
    LOADING_PLACEHOLDER,
    GatePhase,
    NavigationTarget,
    SessionGate,
    decide_navigation,
)

__all__ = [
    "BusRouter",
    "Router",
    "LOADING_PLACEHOLDER",
    "GatePhase",
    "NavigationTarget",
    "SessionGate",
    "decide_navigation",
]
