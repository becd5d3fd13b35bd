"""Session state observed by the navigation gate.

Architecture:
- SessionState: folds auth and route events into snapshots, owns the readiness latch
- SessionSnapshot: immutable view handed to the gate
"""

from .session_state import SessionSnapshot, SessionState, route_segments

__all__ = ["SessionSnapshot", "SessionState", "route_segments"]
