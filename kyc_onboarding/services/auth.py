"""
Authentication Provider for KYC Onboarding

Holds the bearer token and the current user for calls to the verification
backend. In demo mode (no backend configured) a demo user is used and no
requests are made.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .. import config

logger = logging.getLogger(__name__)

# Demo users (no passwords needed)
DEMO_USERS = {
    'investor_user': {
        'id': 'investor_user',
        'name': 'Alex Morgan',
        'email': 'alex.morgan@example.com',
        'kycStatus': 'not_started'
    },
    'verified_user': {
        'id': 'verified_user',
        'name': 'Jordan Lee',
        'email': 'jordan.lee@example.com',
        'kycStatus': 'approved'
    }
}

DEFAULT_DEMO_USER = 'investor_user'


class AuthProvider:
    """Current session for the verification backend."""

    def __init__(
        self,
        token: str = None,
        base_url: str = None,
        timeout: int = None,
        session: requests.Session = None
    ):
        self.base_url = (base_url if base_url is not None else config.KYC_API_BASE_URL).rstrip('/')
        self.token = token if token is not None else config.KYC_API_TOKEN
        self.timeout = timeout or config.KYC_REQUEST_TIMEOUT
        self.demo_mode = not self.base_url
        self.session = session or requests.Session()
        self.user: Optional[Dict[str, Any]] = None

        if self.demo_mode:
            self.user = dict(DEMO_USERS[DEFAULT_DEMO_USER])
            logger.info("Auth provider running in DEMO MODE")

    def headers(self) -> Dict[str, str]:
        """Authorization header for backend calls, if logged in."""
        if self.token:
            return {'Authorization': f'Bearer {self.token}'}
        return {}

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in against the backend and keep the returned token.

        Returns:
            Dict with 'status' and, on success, the 'user'
        """
        if self.demo_mode:
            for user in DEMO_USERS.values():
                if user['email'] == email:
                    self.user = dict(user)
                    self.token = f"demo-{user['id']}"
                    return {'status': 'success', 'user': self.user}
            return {'status': 'error', 'message': 'Invalid email or password'}

        try:
            response = self.session.post(
                f"{self.base_url}/auth/login",
                json={'email': email, 'password': password},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Login failed: {e}")
            return {'status': 'error', 'message': 'Invalid email or password'}

        self.token = data.get('token', '')
        self.user = data.get('user')
        return {'status': 'success', 'user': self.user}

    def refresh_user(self) -> Optional[Dict[str, Any]]:
        """
        Reload the current user from the backend.

        A failed refresh keeps the previously known user.
        """
        if self.demo_mode:
            return self.user

        try:
            response = self.session.get(
                f"{self.base_url}/auth/me",
                headers=self.headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            self.user = response.json().get('user', self.user)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to refresh user: {e}")

        return self.user


_provider = None


def get_provider() -> AuthProvider:
    """Get or create the auth provider instance"""
    global _provider
    if _provider is None:
        _provider = AuthProvider()
    return _provider
