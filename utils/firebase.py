"""
Firebase Admin setup for WellQuest Backend
Initializes the default app once and hands out the Firestore client
"""

import os
import logging

from firebase_admin import initialize_app, get_app, credentials, firestore

logger = logging.getLogger(__name__)


def init_firebase(config):
    """
    Return the default Firebase app, initializing it on first use
    """
    try:
        return get_app()
    except ValueError:
        pass

    options = {}
    if config.FIREBASE_PROJECT_ID:
        options['projectId'] = config.FIREBASE_PROJECT_ID

    try:
        cred_path = config.GOOGLE_APPLICATION_CREDENTIALS
        if cred_path and os.path.exists(cred_path):
            # Local development with a service account key
            app = initialize_app(credentials.Certificate(cred_path), options or None)
        else:
            # Default credentials in Cloud Functions
            app = initialize_app(options=options or None)
        logger.info("Firebase app initialized")
        return app
    except Exception as e:
        logger.error(f"Error initializing Firebase: {str(e)}")
        raise


def get_db(config):
    init_firebase(config)
    return firestore.client()
