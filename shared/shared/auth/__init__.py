from shared.auth.config import AuthSettings
from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
    require_roles,
)

__all__ = [
    "AuthSettings",
    "get_current_user_optional",
    "get_current_user_required",
    "require_roles",
]
