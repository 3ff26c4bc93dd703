from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_login import current_user, login_required
from jwt.exceptions import PyJWTError

from ..errors import PermissionDenied
from ..extensions import db, login_manager
from ..models.user import PRINCIPALS

logger = logging.getLogger(__name__)


def issue_token(principal) -> str:
    return create_access_token(
        identity=str(principal.id), additional_claims={"role": principal.role}
    )


def _bearer_token(request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@login_manager.request_loader
def load_principal_from_bearer(request):
    token = _bearer_token(request)
    if token is None:
        return None
    try:
        claims = decode_token(token)
    except (JWTExtendedException, PyJWTError) as exc:
        logger.info("Rejected bearer token: %s", exc)
        return None
    if claims.get("type") != "access":
        return None
    model = PRINCIPALS.get(claims.get("role"))
    if model is None:
        return None
    try:
        principal_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    return db.session.get(model, principal_id)


@login_manager.unauthorized_handler
def _unauthorized():
    return jsonify({"error": "Authentication required."}), 401


def role_required(*roles):
    """login_required plus a check on the token's role."""

    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role not in roles:
                raise PermissionDenied("You are not allowed to access this resource.")
            return view(*args, **kwargs)

        return wrapped

    return decorator


def principal():
    return current_user._get_current_object()
