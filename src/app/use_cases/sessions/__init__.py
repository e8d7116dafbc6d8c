"""
Session Use Cases
"""

from .revoke_sessions_use_case import RevokeSessionsUseCase

__all__ = ["RevokeSessionsUseCase"]
