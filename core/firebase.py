from functools import lru_cache
import json
import logging
import os

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import auth as firebase_auth, credentials, firestore

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def initialize_firebase():
    """Initialize Firebase Admin SDK with production-ready credential handling"""

    # Already initialized (e.g. by another import path)
    if firebase_admin._apps:
        return firebase_admin.get_app()

    # Method 1: Service Account Key from Environment Variable (Recommended for production)
    service_account_key_json = os.getenv('FIREBASE_SERVICE_ACCOUNT_KEY')

    if service_account_key_json:
        try:
            # Parse the JSON string from environment variable
            service_account_info = json.loads(service_account_key_json)
            cred = credentials.Certificate(service_account_info)
            app = firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized with Service Account Key from environment variable.")
            return app
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error parsing FIREBASE_SERVICE_ACCOUNT_KEY: {e}")

    # Method 2: Service Account Key File (for local development only)
    service_account_key_path = os.getenv('FIREBASE_SERVICE_ACCOUNT_KEY_PATH')
    if service_account_key_path and os.path.exists(service_account_key_path):
        cred = credentials.Certificate(service_account_key_path)
        app = firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin SDK initialized with Service Account Key from file path.")
        return app

    # Method 3: GOOGLE_APPLICATION_CREDENTIALS / Application Default Credentials
    app = firebase_admin.initialize_app()
    if os.getenv('GOOGLE_APPLICATION_CREDENTIALS'):
        logger.info("Firebase Admin SDK initialized with GOOGLE_APPLICATION_CREDENTIALS.")
    else:
        logger.info("Firebase Admin SDK initialized with default Application Default Credentials.")
    return app


# Initialized on first use so importing the app never needs credentials
@lru_cache(maxsize=1)
def get_firestore_client():
    initialize_firebase()
    return firestore.client()


def verify_id_token(token: str) -> dict:
    initialize_firebase()
    return firebase_auth.verify_id_token(token)
