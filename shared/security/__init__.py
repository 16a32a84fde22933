from .jwt_handler import create_access_token, verify_access_token
from .policy import Action, Role, can_perform
from .rate_limiter import limiter, user_id_or_ip

# dependencies.py is imported directly (shared.security.dependencies) since it
# reaches into the auth service's repository.

__all__ = [
    "create_access_token",
    "verify_access_token",
    "Action",
    "Role",
    "can_perform",
    "limiter",
    "user_id_or_ip",
]
