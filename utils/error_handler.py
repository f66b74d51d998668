"""
Error Handler for WellQuest Backend
Centralized error handling and logging
"""

from datetime import datetime, timezone
from flask import jsonify
import logging
import traceback

from dateutil import parser as date_parser

from engine.quest_session import QuestStateError

logger = logging.getLogger(__name__)

class WellQuestError(Exception):
    """Base exception class for WellQuest"""
    def __init__(self, message, status_code=500, error_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

class ValidationError(WellQuestError):
    """Raised when input validation fails"""
    def __init__(self, message, field=None):
        super().__init__(message, status_code=400, error_code='VALIDATION_ERROR')
        self.field = field

class AuthenticationError(WellQuestError):
    """Raised when authentication fails"""
    def __init__(self, message):
        super().__init__(message, status_code=401, error_code='AUTH_ERROR')

class AuthorizationError(WellQuestError):
    """Raised when user lacks required permissions"""
    def __init__(self, message):
        super().__init__(message, status_code=403, error_code='PERMISSION_ERROR')

class NotFoundError(WellQuestError):
    """Raised when requested resource is not found"""
    def __init__(self, message):
        super().__init__(message, status_code=404, error_code='NOT_FOUND')

class ConflictError(WellQuestError):
    """Raised when the request clashes with the current state of a resource"""
    def __init__(self, message):
        super().__init__(message, status_code=409, error_code='CONFLICT')

class OutOfRangeError(WellQuestError):
    """Raised when the player is too far from a map asset"""
    def __init__(self, message, distance=None):
        super().__init__(message, status_code=422, error_code='OUT_OF_RANGE')
        self.distance = distance

class DatabaseError(WellQuestError):
    """Raised when database operation fails"""
    def __init__(self, message):
        super().__init__(message, status_code=500, error_code='DATABASE_ERROR')

class ExternalServiceError(WellQuestError):
    """Raised when external service call fails"""
    def __init__(self, message, service_name=None):
        super().__init__(message, status_code=503, error_code='SERVICE_ERROR')
        self.service_name = service_name

def handle_error(error):
    """
    Central error handler that converts exceptions to JSON responses
    """
    try:
        if isinstance(error, WellQuestError):
            if error.status_code >= 500:
                logger.error(f"WellQuest error: {error.message}")
            else:
                logger.warning(f"WellQuest error: {error.message}")
            body = {
                'error': error.message,
                'error_code': error.error_code,
                'status': 'error'
            }
            if isinstance(error, OutOfRangeError) and error.distance is not None:
                body['distance'] = round(error.distance, 1)
            return jsonify(body), error.status_code

        # Quest state machine refused the transition
        elif isinstance(error, QuestStateError):
            logger.warning(f"Quest state error: {str(error)}")
            return jsonify({
                'error': str(error),
                'error_code': 'INVALID_STATE',
                'status': 'error'
            }), 409

        elif isinstance(error, ValueError):
            logger.warning(f"Validation error: {str(error)}")
            return jsonify({
                'error': str(error),
                'error_code': 'VALIDATION_ERROR',
                'status': 'error'
            }), 400

        elif isinstance(error, KeyError):
            logger.warning(f"Missing key error: {str(error)}")
            return jsonify({
                'error': f'Missing required field: {str(error)}',
                'error_code': 'MISSING_FIELD',
                'status': 'error'
            }), 400

        elif isinstance(error, PermissionError):
            logger.warning(f"Permission error: {str(error)}")
            return jsonify({
                'error': 'Insufficient permissions',
                'error_code': 'PERMISSION_DENIED',
                'status': 'error'
            }), 403

        # Firebase Admin errors
        elif 'firebase_admin' in str(type(error)):
            logger.error(f"Firebase error: {str(error)}")
            return jsonify({
                'error': 'Service temporarily unavailable',
                'error_code': 'SERVICE_ERROR',
                'status': 'error'
            }), 503

        elif isinstance(error, (ConnectionError, TimeoutError)):
            logger.error(f"Connection error: {str(error)}")
            return jsonify({
                'error': 'Service temporarily unavailable',
                'error_code': 'CONNECTION_ERROR',
                'status': 'error'
            }), 503

        else:
            logger.error(f"Unhandled error: {str(error)}")
            logger.error(traceback.format_exc())

            return jsonify({
                'error': 'An unexpected error occurred',
                'error_code': 'INTERNAL_ERROR',
                'status': 'error'
            }), 500

    except Exception as e:
        logger.critical(f"Error in error handler: {str(e)}")
        return jsonify({
            'error': 'Critical system error',
            'error_code': 'CRITICAL_ERROR',
            'status': 'error'
        }), 500

def validate_request_data(data, required_fields, optional_fields=None):
    """
    Validate request data against required and optional fields
    """
    if not data:
        raise ValidationError("Request body cannot be empty")

    missing_fields = [
        field for field in required_fields
        if field not in data or data[field] is None
    ]
    if missing_fields:
        raise ValidationError(f"Missing required fields: {', '.join(missing_fields)}")

    if optional_fields:
        for field, expected_type in optional_fields.items():
            if field in data and data[field] is not None:
                if not isinstance(data[field], expected_type):
                    type_name = getattr(expected_type, '__name__', 'the expected type')
                    raise ValidationError(f"Field '{field}' must be of type {type_name}", field=field)

    return True

def parse_location(data, field='location'):
    """
    Pull a {'lat', 'lng'} (or latitude/longitude) location out of a request body
    """
    location = (data or {}).get(field)
    if not isinstance(location, dict):
        raise ValidationError(f"Field '{field}' must be an object with lat and lng", field=field)

    lat = location.get('lat', location.get('latitude'))
    lng = location.get('lng', location.get('longitude'))
    if lat is None or lng is None:
        raise ValidationError(f"Field '{field}' must include lat and lng", field=field)
    if isinstance(lat, bool) or isinstance(lng, bool):
        raise ValidationError(f"Field '{field}' coordinates must be numbers", field=field)
    return lat, lng

def parse_timestamp(value):
    """
    Accept a datetime or ISO 8601 string; naive values are taken as UTC
    """
    if value is None or value == '':
        return None
    if not isinstance(value, datetime):
        try:
            value = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid timestamp: {value}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
