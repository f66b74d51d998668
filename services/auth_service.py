"""
Authentication Service for WellQuest
Handles registration, anonymous sign-in, login and Firebase Auth integration
"""

from datetime import datetime, timezone
import logging

from firebase_admin import auth

from services.user_service import build_user_profile
from utils.error_handler import (
    WellQuestError, ValidationError, AuthenticationError, ConflictError,
    NotFoundError, ExternalServiceError
)

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = 'Explorer'
MIN_PASSWORD_LENGTH = 6


def anonymous_display_name(uid):
    return f"{DEFAULT_DISPLAY_NAME} {uid[-6:]}"


def _token_text(token):
    # Older firebase-admin releases return bytes
    return token.decode('utf-8') if isinstance(token, bytes) else token


class AuthService:
    def __init__(self, db, clock=None):
        self.db = db
        self.users_ref = db.collection('users')
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def create_user(self, email, password, display_name=None, avatar=''):
        """
        Create a new user account with Firebase Auth and Firestore profile
        """
        try:
            if not email or '@' not in email:
                raise ValidationError("A valid email is required", field='email')
            if not password or len(password) < MIN_PASSWORD_LENGTH:
                raise ValidationError(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field='password'
                )
            display_name = (display_name or '').strip() or DEFAULT_DISPLAY_NAME

            user_record = auth.create_user(
                email=email,
                password=password,
                display_name=display_name
            )

            user_data = build_user_profile(
                user_record.uid, email, display_name, avatar=avatar, now=self.clock()
            )
            self.users_ref.document(user_record.uid).set(user_data)

            custom_token = auth.create_custom_token(user_record.uid)

            logger.info(f"Created new user: {email} with ID: {user_record.uid}")

            return {
                'success': True,
                'user_id': user_record.uid,
                'email': email,
                'display_name': display_name,
                'custom_token': _token_text(custom_token),
                'message': 'User created successfully'
            }

        except auth.EmailAlreadyExistsError:
            logger.warning(f"Attempt to create user with existing email: {email}")
            raise ConflictError("Email already exists")
        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error creating user: {str(e)}")
            raise ExternalServiceError(f"Failed to create user: {str(e)}", service_name='firebase_auth')

    def sign_in_anonymously(self):
        """
        Create an anonymous Auth user with an 'Explorer xxxxxx' profile
        """
        try:
            user_record = auth.create_user()
            display_name = anonymous_display_name(user_record.uid)
            auth.update_user(user_record.uid, display_name=display_name)

            user_data = build_user_profile(
                user_record.uid, '', display_name, is_anonymous=True, now=self.clock()
            )
            self.users_ref.document(user_record.uid).set(user_data)

            custom_token = auth.create_custom_token(user_record.uid)

            logger.info(f"Created anonymous user: {user_record.uid}")

            return {
                'success': True,
                'user_id': user_record.uid,
                'display_name': display_name,
                'is_anonymous': True,
                'custom_token': _token_text(custom_token),
            }

        except Exception as e:
            logger.error(f"Error signing in anonymously: {str(e)}")
            raise ExternalServiceError(f"Failed to sign in anonymously: {str(e)}", service_name='firebase_auth')

    def login_user(self, uid):
        """
        Return a custom token and profile for the caller whose ID token was
        already verified. Passwords are checked by the Firebase client SDK.
        """
        try:
            user_record = auth.get_user(uid)
            custom_token = auth.create_custom_token(user_record.uid)
            now = self.clock()
            email = getattr(user_record, 'email', None) or ''

            user_doc_ref = self.users_ref.document(user_record.uid)
            user_doc = user_doc_ref.get()
            if not user_doc.exists:
                # Auto-heal: recreate a missing profile
                user_data = build_user_profile(
                    user_record.uid,
                    email,
                    getattr(user_record, 'display_name', None) or DEFAULT_DISPLAY_NAME,
                    now=now,
                )
                user_doc_ref.set(user_data)
                logger.warning(f"Recreated missing profile for user: {user_record.uid}")
            else:
                user_data = user_doc.to_dict()

            user_doc_ref.update({
                'last_login_at': now,
                'updated_at': now
            })

            logger.info(f"User logged in: {user_record.uid}")

            return {
                'success': True,
                'user_id': user_record.uid,
                'email': user_data.get('email', email),
                'display_name': user_data.get('display_name', DEFAULT_DISPLAY_NAME),
                'custom_token': _token_text(custom_token),
                'profile': {
                    'xp': user_data.get('xp', 0),
                    'level': user_data.get('level', 1),
                    'wellness_capital': user_data.get('wellness_capital', 0),
                    'current_streak': user_data.get('current_streak', 0),
                    'achievements': user_data.get('achievements', [])
                }
            }

        except auth.UserNotFoundError:
            logger.warning(f"Login attempt for unknown user: {uid}")
            raise NotFoundError("User not found")
        except Exception as e:
            logger.error(f"Error logging in user: {str(e)}")
            raise ExternalServiceError(f"Failed to login: {str(e)}", service_name='firebase_auth')

    def verify_user_token(self, id_token):
        """
        Verify Firebase ID token and return decoded user info
        """
        try:
            decoded_token = auth.verify_id_token(id_token)
            return {
                'valid': True,
                'uid': decoded_token['uid'],
                'email': decoded_token.get('email', ''),
                'email_verified': decoded_token.get('email_verified', False)
            }
        except auth.ExpiredIdTokenError:
            logger.warning("Expired ID token provided")
            raise AuthenticationError("Token expired")
        except auth.InvalidIdTokenError:
            logger.warning("Invalid ID token provided")
            raise AuthenticationError("Invalid token")
        except Exception as e:
            logger.error(f"Error verifying token: {str(e)}")
            raise AuthenticationError(f"Token verification failed: {str(e)}")

    def delete_user(self, uid):
        """
        Delete user from both Firebase Auth and Firestore
        """
        try:
            auth.delete_user(uid)
            self.users_ref.document(uid).delete()

            logger.info(f"Deleted user: {uid}")
            return True
        except Exception as e:
            logger.error(f"Error deleting user: {str(e)}")
            return False
