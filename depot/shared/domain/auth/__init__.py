from depot.shared.domain.auth.session_service import (
    CURRENT_USER_KEY,
    SESSION_KEY,
    Session,
    SessionService,
)

__all__ = ["CURRENT_USER_KEY", "SESSION_KEY", "Session", "SessionService"]
