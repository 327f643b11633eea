from .session_policy import LOGOUT_DELAY_CACHE_KEY, SessionPolicy

__all__ = ["LOGOUT_DELAY_CACHE_KEY", "SessionPolicy"]
