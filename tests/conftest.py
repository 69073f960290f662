"""
Shared fixtures for the KYC onboarding tests
"""

import io
from datetime import date

import pytest
from PIL import Image

from kyc_onboarding.errors import StatusCheckError
from kyc_onboarding.models import RawFile, SubmissionDraft, UploadedDocument
from kyc_onboarding.services.workflow import OnboardingWizard

TODAY = date(2026, 10, 18)


def png_bytes(size=(4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format='PNG')
    return buffer.getvalue()


def pdf_bytes() -> bytes:
    return b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n'


def make_document(key: str, filename: str = None) -> UploadedDocument:
    return UploadedDocument(
        document_type_key=key,
        filename=filename or f'{key}.pdf',
        content=pdf_bytes(),
        mime_type='application/pdf'
    )


def make_raw(filename: str = 'scan.pdf', content: bytes = None, mime_type: str = 'application/pdf') -> RawFile:
    return RawFile(filename=filename, content=pdf_bytes() if content is None else content, mime_type=mime_type)


def fill_draft(draft: SubmissionDraft) -> SubmissionDraft:
    draft.personal.first_name = 'Ada'
    draft.personal.last_name = 'Lovelace'
    draft.personal.date_of_birth = '1990-12-10'
    draft.personal.nationality = 'British'
    draft.personal.phone_number = '+12025551234'
    draft.address.street = '1 Main Street'
    draft.address.city = 'Springfield'
    draft.address.state = 'IL'
    draft.address.postal_code = '62701'
    draft.address.country = 'US'
    return draft


class FakeAuth:
    def __init__(self):
        self.user = {'id': 'investor_user', 'kycStatus': 'not_started'}
        self.refresh_count = 0

    def headers(self):
        return {'Authorization': 'Bearer test-token'}

    def refresh_user(self):
        self.refresh_count += 1
        return self.user


class FakeSubmissionClient:
    def __init__(self, response=None, error=None):
        self.response = response or {
            'message': 'KYC submitted',
            'submission': {
                'id': 'KYC-0001',
                'status': 'pending',
                'submittedAt': '2026-10-18T10:00:00',
                'documentsUploaded': 2
            }
        }
        self.error = error
        self.payloads = []

    def submit(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.response


class FakeStatusClient:
    def __init__(self, status='not_started', error=None):
        self.status = status
        self.error = error

    def get_status(self):
        if self.error is not None:
            raise self.error
        return {'status': self.status}


@pytest.fixture
def draft():
    return fill_draft(SubmissionDraft())


@pytest.fixture
def identity_documents():
    return [make_document('passport'), make_document('proof_of_address')]


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def submission_client():
    return FakeSubmissionClient()


@pytest.fixture
def wizard(auth, submission_client):
    wizard = OnboardingWizard(
        submission_client=submission_client,
        status_client=FakeStatusClient(),
        auth=auth,
        today=lambda: TODAY
    )
    wizard.start()
    return wizard


@pytest.fixture
def unreachable_status():
    return FakeStatusClient(error=StatusCheckError('connection refused'))
