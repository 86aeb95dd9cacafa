# retailhub/auth.py
from functools import wraps

import jwt
from flask import current_app, g, request
from flask_smorest import abort

from .constants.service_code import AUTHENTICATION_MESSAGES
from .utils.logger import Log


def decode_seller_token(token):
    return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])


def token_required(f):
    """Resolve the calling seller from a bearer token into g.current_user."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            abort(401, message=AUTHENTICATION_MESSAGES["AUTHENTICATION_REQUIRED"])

        token = auth_header.split()[1]
        log_tag = "[auth.py][token_required]"

        try:
            data = decode_seller_token(token)
        except jwt.ExpiredSignatureError:
            abort(401, message=AUTHENTICATION_MESSAGES["TOKEN_EXPIRED"])
        except jwt.InvalidTokenError as e:
            Log.info(f"{log_tag} invalid token: {str(e)}")
            abort(401, message=AUTHENTICATION_MESSAGES["INVALID_TOKEN"])

        seller_id = data.get("seller_id")
        if not seller_id:
            abort(401, message=AUTHENTICATION_MESSAGES["INVALID_TOKEN"])

        g.current_user = {"seller_id": str(seller_id)}
        return f(*args, **kwargs)

    return decorated
