"""
Data model for the KYC onboarding wizard

The SubmissionDraft is the single mutable aggregate of a wizard session.
Uploaded documents live beside it in the session's document list.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional

DEFAULT_COUNTRY = 'US'

PERSONAL_FIELDS = ('first_name', 'last_name', 'date_of_birth', 'nationality', 'phone_number')
ADDRESS_FIELDS = ('street', 'city', 'state', 'postal_code', 'country')


@dataclass
class PersonalInfo:
    first_name: str = ''
    last_name: str = ''
    date_of_birth: str = ''
    nationality: str = ''
    phone_number: str = ''


@dataclass
class Address:
    street: str = ''
    city: str = ''
    state: str = ''
    postal_code: str = ''
    country: str = DEFAULT_COUNTRY


@dataclass
class AccreditedInvestor:
    """
    Accredited investor claim as entered by the user.

    ``values`` keeps everything typed for any investor type, including values
    left over after the user switched type. Only the values of the selected
    type are ever read (see services.accreditation.active_claim).
    """
    claimed: bool = False
    type: Optional[str] = None
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SubmissionDraft:
    personal: PersonalInfo = field(default_factory=PersonalInfo)
    address: Address = field(default_factory=Address)
    accredited_investor: AccreditedInvestor = field(default_factory=AccreditedInvestor)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RawFile:
    """A file as received from the upload zone, before intake."""
    filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class UploadedDocument:
    """One accepted file attached to a document slot."""
    document_type_key: str
    filename: str
    content: bytes
    mime_type: str
    preview_data_uri: Optional[str] = None
    document_id: str = field(default_factory=lambda: f"DOC-{uuid.uuid4().hex[:12]}")
    uploaded_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def size(self) -> int:
        return len(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'document_type_key': self.document_type_key,
            'filename': self.filename,
            'mime_type': self.mime_type,
            'size': self.size,
            'has_preview': self.preview_data_uri is not None,
            'uploaded_at': self.uploaded_at
        }


@dataclass
class ValidationError:
    """Per-file intake rejection."""
    filename: str
    document_type_key: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)
