from memorial.models.authentication import AuthenticationRecord
from memorial.models.user import User

__all__ = [
    "AuthenticationRecord",
    "User",
]
