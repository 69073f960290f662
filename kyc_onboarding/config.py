"""
Configuration for the KYC Onboarding Wizard

Values are read from the environment (a local .env file is loaded first).
Without KYC_API_BASE_URL the service clients run in demo mode.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Verification backend
KYC_API_BASE_URL = os.environ.get('KYC_API_BASE_URL', '').rstrip('/')
KYC_API_TOKEN = os.environ.get('KYC_API_TOKEN', '')
KYC_REQUEST_TIMEOUT = int(os.environ.get('KYC_REQUEST_TIMEOUT', '30'))

# Demo mode - activated when no backend URL is configured
DEMO_MODE = not KYC_API_BASE_URL

# Onboarding policy
KYC_MIN_AGE = int(os.environ.get('KYC_MIN_AGE', '18'))

# Web app
SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(24)
PORT = int(os.environ.get('PORT', 5001))
FLASK_ENV = os.environ.get('FLASK_ENV', 'development')
