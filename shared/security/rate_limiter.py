import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .jwt_handler import verify_access_token

LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "20/minute")


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Uses the user id from a valid bearer token, else the client's IP address.
    """
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        payload = verify_access_token(auth_header.split(" ", 1)[1])
        if payload:
            return f"user:{payload['sub']}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=user_id_or_ip,
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
)
