from app.features.auth.models.otp import OneTimeCode
from app.features.auth.models.session import UserSession
from app.features.auth.models.user import User, UserRole

__all__ = ["User",
           "UserRole",
           "OneTimeCode",
           "UserSession",
        ]
