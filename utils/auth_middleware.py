"""
Authentication Middleware for WellQuest Backend
Handles Firebase token validation and request authentication
"""

from functools import wraps
from flask import g, request
from firebase_admin import auth
import logging

from utils.error_handler import AuthenticationError, AuthorizationError, handle_error

logger = logging.getLogger(__name__)

def _bearer_token():
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        raise AuthenticationError('Authorization header required')

    # Strip the 'Bearer ' prefix
    token = auth_header.replace('Bearer ', '').strip()
    if not token:
        raise AuthenticationError('Valid token required')
    return token

def _verify(token):
    try:
        return auth.verify_id_token(token)
    except auth.ExpiredIdTokenError:
        logger.warning("Expired token provided")
        raise AuthenticationError('Token expired')
    except auth.RevokedIdTokenError:
        logger.warning("Revoked token provided")
        raise AuthenticationError('Token revoked')
    except auth.InvalidIdTokenError:
        logger.warning("Invalid token provided")
        raise AuthenticationError('Invalid token')
    except Exception as e:
        logger.error(f"Authentication error: {str(e)}")
        raise AuthenticationError('Authentication failed')

def is_admin(decoded_token):
    if decoded_token.get('admin', False):
        return True
    return bool(decoded_token.get('custom_claims', {}).get('admin', False))

def require_auth(f):
    """
    Decorator to require authentication for API endpoints
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.current_user = _verify(_bearer_token())
        except AuthenticationError as e:
            return handle_error(e)
        return f(*args, **kwargs)

    return decorated_function

def require_admin(f):
    """
    Decorator to require admin privileges
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            decoded_token = _verify(_bearer_token())
            if not is_admin(decoded_token):
                logger.warning(f"Non-admin user attempted admin action: {decoded_token['uid']}")
                raise AuthorizationError('Admin privileges required')
            g.current_user = decoded_token
        except (AuthenticationError, AuthorizationError) as e:
            return handle_error(e)
        return f(*args, **kwargs)

    return decorated_function

def current_user_id():
    """UID of the authenticated caller"""
    return g.current_user['uid']
