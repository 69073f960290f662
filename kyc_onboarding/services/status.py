"""
Verification Status Service Client

Asks the verification backend where the current user stands:
not_started, pending, approved, or rejected.
"""

import logging
from typing import Any, Dict

import requests

from .. import config
from ..errors import StatusCheckError
from .auth import AuthProvider, get_provider

logger = logging.getLogger(__name__)

KYC_STATUSES = ('not_started', 'pending', 'approved', 'rejected')
STATUS_NOT_STARTED = 'not_started'
STATUS_UNKNOWN = 'unknown'


class StatusClient:
    """Client for GET /kyc/status"""

    def __init__(
        self,
        auth: AuthProvider = None,
        base_url: str = None,
        timeout: int = None,
        session: requests.Session = None
    ):
        self.auth = auth or get_provider()
        self.base_url = (base_url if base_url is not None else config.KYC_API_BASE_URL).rstrip('/')
        self.timeout = timeout or config.KYC_REQUEST_TIMEOUT
        self.demo_mode = not self.base_url
        self.session = session or requests.Session()

        if self.demo_mode:
            logger.info("Status service running in DEMO MODE")

    def _demo_status(self) -> Dict[str, Any]:
        user = self.auth.user or {}
        return {
            'status': user.get('kycStatus', STATUS_NOT_STARTED),
            'demo_mode': True
        }

    def get_status(self) -> Dict[str, Any]:
        """
        Fetch the current verification status.

        Returns:
            Dict with 'status' and, once submitted, 'submission'

        Raises:
            StatusCheckError: backend unreachable or the answer made no sense
        """
        if self.demo_mode:
            return self._demo_status()

        try:
            response = self.session.get(
                f"{self.base_url}/kyc/status",
                headers=self.auth.headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Status service error: {e}")
            raise StatusCheckError(str(e)) from e

        status = data.get('status') if isinstance(data, dict) else None
        if status not in KYC_STATUSES:
            raise StatusCheckError(f"Unexpected KYC status: {status!r}")

        return data


_client = None


def get_client() -> StatusClient:
    """Get or create the status client instance"""
    global _client
    if _client is None:
        _client = StatusClient()
    return _client
