"""
Step Validator for the KYC Onboarding Wizard

Pure functions from (step, draft, documents) to an error map. The map is
rebuilt from scratch on every call; an empty map means the step passes.
"""

import re
from datetime import date, datetime
from typing import Dict, Optional, Sequence

from .. import config
from ..models import SubmissionDraft, UploadedDocument
from .accreditation import PendingClaim, active_claim
from .document_catalog import (
    IDENTITY_DOCUMENT_KEYS,
    PROOF_OF_ADDRESS_KEY,
    is_accredited_key
)

PHONE_PATTERN = re.compile(r'^\+[1-9]\d{1,14}$')

STEP_PERSONAL = 0
STEP_ADDRESS = 1
STEP_DOCUMENTS = 2
STEP_ACCREDITATION = 3
STEP_REVIEW = 4

PERSONAL_RULES = [
    ('first_name', 'firstName', 'First name is required'),
    ('last_name', 'lastName', 'Last name is required'),
    ('date_of_birth', 'dateOfBirth', 'Date of birth is required'),
    ('nationality', 'nationality', 'Nationality is required'),
    ('phone_number', 'phoneNumber', 'Phone number is required'),
]

ADDRESS_RULES = [
    ('street', 'address.street', 'Street address is required'),
    ('city', 'address.city', 'City is required'),
    ('state', 'address.state', 'State is required'),
    ('postal_code', 'address.postalCode', 'Postal code is required'),
    ('country', 'address.country', 'Country is required'),
]


def _text(value) -> str:
    return '' if value is None else str(value).strip()


def _blank(value) -> bool:
    return not _text(value)


def _validate_personal(draft: SubmissionDraft, today: date) -> Dict[str, str]:
    errors = {}
    personal = draft.personal

    for attr, key, message in PERSONAL_RULES:
        if _blank(getattr(personal, attr)):
            errors[key] = message

    phone = _text(personal.phone_number)
    if phone and not PHONE_PATTERN.match(phone):
        errors['phoneNumber'] = 'Phone number must be in international format (e.g., +12345678901)'

    dob = _text(personal.date_of_birth)
    if dob:
        try:
            birth_year = datetime.strptime(dob, '%Y-%m-%d').year
        except ValueError:
            errors['dateOfBirth'] = 'Date of birth must be a valid date (YYYY-MM-DD)'
        else:
            # Year difference only; a birthday later this year is not considered
            if today.year - birth_year < config.KYC_MIN_AGE:
                errors['dateOfBirth'] = f'You must be at least {config.KYC_MIN_AGE} years old'

    return errors


def _validate_address(draft: SubmissionDraft) -> Dict[str, str]:
    errors = {}
    for attr, key, message in ADDRESS_RULES:
        if _blank(getattr(draft.address, attr)):
            errors[key] = message
    return errors


def _validate_documents(documents: Sequence[UploadedDocument]) -> Dict[str, str]:
    errors = {}
    keys = {doc.document_type_key for doc in documents}

    if not keys & IDENTITY_DOCUMENT_KEYS:
        errors['documents'] = 'At least one identity document is required'
    if PROOF_OF_ADDRESS_KEY not in keys:
        errors['proofOfAddress'] = 'Proof of address is required'

    return errors


def _validate_accreditation(draft: SubmissionDraft, documents: Sequence[UploadedDocument]) -> Dict[str, str]:
    claim = active_claim(draft.accredited_investor)
    if claim is None:
        return {}

    errors = {}
    keys = {doc.document_type_key for doc in documents}

    if isinstance(claim, PendingClaim):
        errors['accreditedType'] = 'Please select accredited investor type'
    elif not claim.is_complete:
        errors[claim.wire_name] = claim.error_message

    # Any accreditation document counts, whichever type it was uploaded under
    if not any(is_accredited_key(key) for key in keys):
        errors['accreditedDocs'] = 'Supporting documents are required for accredited investor claims'

    return errors


def validate_step(
    step_index: int,
    draft: SubmissionDraft,
    documents: Sequence[UploadedDocument],
    today: Optional[date] = None
) -> Dict[str, str]:
    """
    Validate one wizard step.

    Args:
        step_index: Step number 0-4 (Personal, Address, Documents,
            Accreditation, Review)
        draft: Current submission draft
        documents: Documents attached to the session
        today: Reference date for the age check (defaults to today)

    Returns:
        Dict mapping field keys to error messages, empty when the step passes
    """
    if today is None:
        today = date.today()

    if step_index == STEP_PERSONAL:
        return _validate_personal(draft, today)
    if step_index == STEP_ADDRESS:
        return _validate_address(draft)
    if step_index == STEP_DOCUMENTS:
        return _validate_documents(documents)
    if step_index in (STEP_ACCREDITATION, STEP_REVIEW):
        return _validate_accreditation(draft, documents)

    raise ValueError(f"Unknown step index {step_index}")


def validate_all(
    draft: SubmissionDraft,
    documents: Sequence[UploadedDocument],
    today: Optional[date] = None
) -> Dict[str, str]:
    """Run every step's rules and merge the results."""
    errors: Dict[str, str] = {}
    for step_index in range(STEP_PERSONAL, STEP_REVIEW + 1):
        errors.update(validate_step(step_index, draft, documents, today))
    return errors
