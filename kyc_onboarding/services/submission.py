"""
KYC Submission Service

Flattens the draft and its documents into a multipart payload and posts it
to the verification backend.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

import requests

from .. import config
from ..errors import AssemblyError, SubmissionError
from ..models import SubmissionDraft, UploadedDocument
from .accreditation import TypedClaim, active_claim
from .auth import AuthProvider, get_provider

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = 'Failed to submit KYC. Please try again.'

PERSONAL_WIRE_NAMES = [
    ('first_name', 'firstName'),
    ('last_name', 'lastName'),
    ('date_of_birth', 'dateOfBirth'),
    ('nationality', 'nationality'),
    ('phone_number', 'phoneNumber'),
]

ADDRESS_WIRE_NAMES = [
    ('street', 'street'),
    ('city', 'city'),
    ('state', 'state'),
    ('postal_code', 'postalCode'),
    ('country', 'country'),
]

FilePart = Tuple[str, Tuple[str, bytes, str]]


@dataclass
class OutboundPayload:
    """Multipart body: one part per primitive field, one per document."""
    fields: List[Tuple[str, str]] = field(default_factory=list)
    files: List[FilePart] = field(default_factory=list)

    def field_dict(self) -> Dict[str, str]:
        return dict(self.fields)


def _format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _section_fields(section: Any, section_name: str, names: List[Tuple[str, str]], prefix: str = '') -> List[Tuple[str, str]]:
    if section is None:
        raise AssemblyError(f"Draft is missing its {section_name} section")

    parts = []
    for attr, wire_name in names:
        if not hasattr(section, attr):
            raise AssemblyError(f"Draft {section_name} section has no '{attr}'")
        value = getattr(section, attr)
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise AssemblyError(f"Draft field {section_name}.{attr} must be a string")
        wire_key = f"{prefix}[{wire_name}]" if prefix else wire_name
        parts.append((wire_key, value))
    return parts


def assemble(draft: SubmissionDraft, documents: Sequence[UploadedDocument]) -> OutboundPayload:
    """
    Build the outbound multipart payload.

    No business rules are checked here; callers validate every step first.

    Args:
        draft: Submission draft
        documents: Documents attached to the session

    Returns:
        OutboundPayload ready for the submission client

    Raises:
        AssemblyError: the draft or a document is missing required structure
    """
    if draft is None:
        raise AssemblyError("No draft to submit")

    payload = OutboundPayload()
    payload.fields.extend(_section_fields(draft.personal, 'personal', PERSONAL_WIRE_NAMES))
    payload.fields.extend(_section_fields(draft.address, 'address', ADDRESS_WIRE_NAMES, prefix='address'))

    investor = draft.accredited_investor
    if investor is None:
        raise AssemblyError("Draft is missing its accredited investor section")

    payload.fields.append(('accreditedInvestor[claimed]', 'true' if investor.claimed else 'false'))
    claim = active_claim(investor)
    if claim is not None and investor.type:
        payload.fields.append(('accreditedInvestor[type]', investor.type))
    if isinstance(claim, TypedClaim) and claim.is_complete:
        payload.fields.append((f"accreditedInvestor[{claim.wire_name}]", _format_value(claim.value)))

    for doc in documents:
        if not doc.document_type_key or doc.content is None:
            raise AssemblyError(f"Document {doc.document_id} has no type or content")
        payload.files.append((doc.document_type_key, (doc.filename, doc.content, doc.mime_type)))

    return payload


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_FAILURE_MESSAGE
    if isinstance(body, dict) and body.get('message'):
        return str(body['message'])
    return GENERIC_FAILURE_MESSAGE


class SubmissionClient:
    """Client for the verification backend's KYC endpoints"""

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
            logger.info("Submission service running in DEMO MODE - submissions are not sent")

    def _demo_submit(self, payload: OutboundPayload) -> Dict[str, Any]:
        if self.auth.user is not None:
            self.auth.user['kycStatus'] = 'pending'
        return {
            'message': 'KYC submission received',
            'demo_mode': True,
            'submission': {
                'id': f"KYC-{uuid.uuid4().hex[:8]}",
                'status': 'pending',
                'submittedAt': datetime.now().isoformat(),
                'documentsUploaded': len(payload.files)
            }
        }

    def submit(self, payload: OutboundPayload) -> Dict[str, Any]:
        """
        Post the payload to /kyc/submit.

        Returns:
            Dict with 'message' and 'submission' (id, status, submittedAt,
            documentsUploaded)

        Raises:
            SubmissionError: the backend rejected the submission or could not
                be reached
        """
        if self.demo_mode:
            return self._demo_submit(payload)

        try:
            response = self.session.post(
                f"{self.base_url}/kyc/submit",
                data=payload.fields,
                files=payload.files,
                headers=self.auth.headers(),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"KYC submission failed: {e}")
            raise SubmissionError(GENERIC_FAILURE_MESSAGE) from e

        if not response.ok:
            message = _error_message(response)
            logger.error(f"KYC submission rejected ({response.status_code}): {message}")
            raise SubmissionError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise SubmissionError(GENERIC_FAILURE_MESSAGE, status_code=response.status_code) from e

    def download_document(self, submission_id: str, filename: str) -> bytes:
        """Fetch a document from a previous submission."""
        if self.demo_mode:
            raise SubmissionError('Documents are not stored in demo mode', status_code=404)

        try:
            response = self.session.get(
                f"{self.base_url}/kyc/document/{submission_id}/{filename}",
                headers=self.auth.headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Document download failed: {e}")
            status_code = e.response.status_code if e.response is not None else None
            raise SubmissionError('Failed to download document', status_code=status_code) from e

        return response.content


_client = None


def get_client() -> SubmissionClient:
    """Get or create the submission client instance"""
    global _client
    if _client is None:
        _client = SubmissionClient()
    return _client
