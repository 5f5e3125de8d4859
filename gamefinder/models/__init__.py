from gamefinder.core.database import Base
from gamefinder.models.users import (
    Credential,
    FederatedOnly,
    LocalPassword,
    PasswordResetCode,
    User,
)

__all__ = [
    "Base",
    "Credential",
    "FederatedOnly",
    "LocalPassword",
    "PasswordResetCode",
    "User",
]
