"""
Tests for configuration and request helpers
"""

from datetime import datetime, timezone

import pytest
from flask import Flask

from engine.quest_session import QuestStateError
from utils.config import Config
from utils.error_handler import (
    OutOfRangeError, ValidationError, handle_error, parse_location,
    parse_timestamp, validate_request_data
)


@pytest.mark.unit
class TestConfig:

    def test_defaults(self):
        config = Config(environ={})

        assert config.ENVIRONMENT == 'production'
        assert config.DEBUG is False
        assert config.ALLOWED_ORIGINS == ['*']
        assert config.is_development is False

    def test_environment_overrides(self):
        config = Config(environ={
            'ENVIRONMENT': 'development',
            'LOG_LEVEL': 'debug',
            'ALLOWED_ORIGINS': 'https://app.example.com, http://localhost:3000',
        })

        assert config.DEBUG is True
        assert config.LOG_LEVEL == 'DEBUG'
        assert config.ALLOWED_ORIGINS == ['https://app.example.com', 'http://localhost:3000']
        assert config.is_development is True


@pytest.mark.unit
class TestRequestHelpers:

    def test_validate_request_data(self):
        assert validate_request_data({'a': 1}, ['a']) is True
        with pytest.raises(ValidationError, match='b'):
            validate_request_data({'a': 1}, ['a', 'b'])
        with pytest.raises(ValidationError):
            validate_request_data({}, ['a'])
        with pytest.raises(ValidationError):
            validate_request_data({'a': 'x'}, ['a'], {'a': int})

    def test_parse_location(self):
        assert parse_location({'location': {'lat': 1.5, 'lng': 2.5}}) == (1.5, 2.5)
        assert parse_location({'location': {'latitude': 1.5, 'longitude': 2.5}}) == (1.5, 2.5)
        with pytest.raises(ValidationError):
            parse_location({'location': {'lat': 1.5}})
        with pytest.raises(ValidationError):
            parse_location({'location': [1.5, 2.5]})

    def test_parse_timestamp(self):
        parsed = parse_timestamp('2024-06-03T09:00:00')
        assert parsed == datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)
        assert parse_timestamp('2024-06-03T11:00:00+02:00') == parsed
        assert parse_timestamp(None) is None


@pytest.mark.unit
class TestHandleError:

    @pytest.fixture(autouse=True)
    def app_context(self):
        with Flask(__name__).app_context():
            yield

    def test_out_of_range_includes_distance(self):
        response, status = handle_error(OutOfRangeError('Too far', distance=123.456))

        assert status == 422
        assert response.get_json()['distance'] == 123.5

    def test_quest_state_error_is_conflict(self):
        response, status = handle_error(QuestStateError('Quest is COMPLETED'))

        assert status == 409
        assert response.get_json()['error_code'] == 'INVALID_STATE'

    def test_value_error_is_bad_request(self):
        _, status = handle_error(ValueError('Latitude out of range'))
        assert status == 400

    def test_unexpected_error(self):
        response, status = handle_error(RuntimeError('boom'))

        assert status == 500
        assert response.get_json()['error'] == 'An unexpected error occurred'
