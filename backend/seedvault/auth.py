"""HTTP Basic Auth gate and role enforcement.

Every request outside the static-asset matcher must carry Basic credentials
for either the admin or the viewer pair. A match sets the ``app_role`` cookie
(read by the frontend to hide edit controls) and stores the role on
``request.state.role``; mutating endpoints check the latter through
``require_admin``. The cookie itself is never trusted server-side.
"""
import base64
import binascii
import re
import secrets
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from seedvault.config import Settings, get_settings

ROLE_COOKIE = "app_role"
ADMIN = "admin"
VIEWER = "viewer"

_STATIC_PATH = re.compile(r"^/(?:static/|favicon\.ico$)|\.(?:svg|png|jpg|jpeg|gif|webp)$", re.IGNORECASE)


def is_static_asset(path: str) -> bool:
    return bool(_STATIC_PATH.search(path))


def _decode_basic(header: Optional[str]) -> Optional[tuple[str, str]]:
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user, sep, password = decoded.partition(":")
    if not sep:
        return None
    return user.strip(), password.strip()


def _matches(user: str, password: str, expected_user: Optional[str], expected_pass: Optional[str]) -> bool:
    if not expected_user or not expected_pass:
        return False
    user_ok = secrets.compare_digest(user.encode(), expected_user.strip().encode())
    pass_ok = secrets.compare_digest(password.encode(), expected_pass.strip().encode())
    return user_ok and pass_ok


def resolve_role(header: Optional[str], settings: Settings) -> Optional[str]:
    """Map a raw Authorization header to ``admin``, ``viewer`` or None."""
    credentials = _decode_basic(header)
    if credentials is None:
        return None
    user, password = credentials
    if _matches(user, password, settings.auth_admin_user, settings.auth_admin_pass):
        return ADMIN
    if _matches(user, password, settings.auth_viewer_user, settings.auth_viewer_pass):
        return VIEWER
    return None


def unauthorized_response() -> PlainTextResponse:
    return PlainTextResponse(
        "Unauthorized: Access Denied",
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers={"WWW-Authenticate": 'Basic realm="Garden Manager Secure Area"'},
    )


async def basic_auth_middleware(request: Request, call_next):
    if is_static_asset(request.url.path):
        return await call_next(request)

    role = resolve_role(request.headers.get("authorization"), get_settings())
    if role is None:
        return unauthorized_response()

    request.state.role = role
    response = await call_next(request)
    response.set_cookie(ROLE_COOKIE, role, path="/")
    return response


# ── Role-based dependencies ──────────────────────────────────
def get_role(request: Request) -> str:
    return getattr(request.state, "role", VIEWER)


def require_admin(request: Request) -> str:
    role = get_role(request)
    if role != ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return role
