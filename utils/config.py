"""
Configuration for WellQuest Backend
Reads settings from the environment, loading a local .env file first
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Settings snapshot taken from os.environ"""

    def __init__(self, environ=None):
        env = os.environ if environ is None else environ

        self.ENVIRONMENT = env.get('ENVIRONMENT', 'production')
        self.DEBUG = _as_bool(env.get('DEBUG'), default=self.ENVIRONMENT == 'development')
        self.LOG_LEVEL = env.get('LOG_LEVEL', 'INFO').upper()
        self.API_VERSION = env.get('API_VERSION', '1.0.0')
        self.FIREBASE_PROJECT_ID = env.get('FIREBASE_PROJECT_ID')
        self.GOOGLE_APPLICATION_CREDENTIALS = env.get('GOOGLE_APPLICATION_CREDENTIALS')

        origins = env.get('ALLOWED_ORIGINS', '*')
        self.ALLOWED_ORIGINS = [o.strip() for o in origins.split(',') if o.strip()] or ['*']

    @property
    def is_development(self):
        return self.ENVIRONMENT in ('development', 'test')


config = Config()
