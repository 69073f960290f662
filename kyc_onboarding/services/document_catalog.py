"""
Document Catalog and Requirement Resolver

Static catalogs of the document slots a user can upload into, and the
resolver that decides which slots apply to the current draft.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from ..models import AccreditedInvestor, SubmissionDraft, UploadedDocument

logger = logging.getLogger(__name__)

MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10MB

# MIME types the intake pipeline will take
ALLOWED_MIME_TYPES: Tuple[str, ...] = (
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
    'application/pdf',
)

IDENTITY_DOCUMENT_KEYS = frozenset({'passport', 'drivers_license', 'national_id'})
PROOF_OF_ADDRESS_KEY = 'proof_of_address'
ACCREDITED_PREFIX = 'accredited_'


@dataclass(frozen=True)
class DocumentTypeDescriptor:
    key: str
    label: str
    description: str
    required: bool = False
    accepted_mime_types: Tuple[str, ...] = ALLOWED_MIME_TYPES
    max_size: int = MAX_DOCUMENT_SIZE

    def to_dict(self) -> Dict:
        return {
            'key': self.key,
            'label': self.label,
            'description': self.description,
            'required': self.required,
            'accepted_mime_types': list(self.accepted_mime_types),
            'max_size': self.max_size
        }


BASELINE_DOCUMENT_TYPES: Tuple[DocumentTypeDescriptor, ...] = (
    DocumentTypeDescriptor(
        key='passport',
        label='Passport',
        description='Government-issued passport (photo page)',
    ),
    DocumentTypeDescriptor(
        key='drivers_license',
        label="Driver's License",
        description="Government-issued driver's license (front and back)",
    ),
    DocumentTypeDescriptor(
        key='national_id',
        label='National ID',
        description='Government-issued national identification card',
    ),
    DocumentTypeDescriptor(
        key='proof_of_address',
        label='Proof of Address',
        description='Utility bill, bank statement, or lease agreement (within 3 months)',
        required=True,
    ),
    DocumentTypeDescriptor(
        key='bank_statement',
        label='Bank Statement',
        description='Recent bank statement (within 3 months)',
    ),
)

ACCREDITED_DOCUMENT_TYPES: Tuple[DocumentTypeDescriptor, ...] = (
    DocumentTypeDescriptor(
        key='accredited_income',
        label='Income Verification',
        description='Tax returns, W-2s, or pay stubs for income verification',
    ),
    DocumentTypeDescriptor(
        key='accredited_net_worth',
        label='Net Worth Documentation',
        description='Bank statements, investment accounts, property appraisals',
    ),
    DocumentTypeDescriptor(
        key='accredited_professional',
        label='Professional Certification',
        description='Professional licenses or certifications (Series 7, 65, 82, CPA, CFA)',
    ),
    DocumentTypeDescriptor(
        key='accredited_entity',
        label='Entity Documentation',
        description='Audited financial statements, formation documents',
    ),
)

DOCUMENT_INDEX: Dict[str, DocumentTypeDescriptor] = {
    doc.key: doc for doc in BASELINE_DOCUMENT_TYPES + ACCREDITED_DOCUMENT_TYPES
}


def get_descriptor(key: str) -> DocumentTypeDescriptor:
    """Return the descriptor for a document slot key."""
    if key not in DOCUMENT_INDEX:
        raise KeyError(f"Unknown document type '{key}'")
    return DOCUMENT_INDEX[key]


def accredited_key(investor_type: str) -> str:
    return f"{ACCREDITED_PREFIX}{investor_type}"


def is_accredited_key(key: str) -> bool:
    return key.startswith(ACCREDITED_PREFIX)


def resolve_accreditation_documents(investor: AccreditedInvestor) -> List[DocumentTypeDescriptor]:
    """
    Work out which accreditation slots are currently in play.

    Args:
        investor: Accredited investor part of the draft

    Returns:
        All four accreditation descriptors while no type is chosen, otherwise
        only the descriptor matching the chosen type
    """
    if not investor.type:
        return list(ACCREDITED_DOCUMENT_TYPES)
    wanted = accredited_key(investor.type)
    return [doc for doc in ACCREDITED_DOCUMENT_TYPES if doc.key == wanted]


def upload_slots(draft: SubmissionDraft) -> Dict[str, List[DocumentTypeDescriptor]]:
    """
    Group the upload slots to render for a draft.

    Returns:
        Dict with 'identity' (choose at least one), 'additional', and
        'accreditation' (empty unless the user claims accredited status)
    """
    investor = draft.accredited_investor
    return {
        'identity': [d for d in BASELINE_DOCUMENT_TYPES if d.key in IDENTITY_DOCUMENT_KEYS],
        'additional': [d for d in BASELINE_DOCUMENT_TYPES if d.key not in IDENTITY_DOCUMENT_KEYS],
        'accreditation': resolve_accreditation_documents(investor) if investor.claimed else []
    }


def generate_checklist(
    draft: SubmissionDraft,
    documents: Sequence[UploadedDocument]
) -> List[Dict]:
    """
    Build a per-slot checklist of what has been uploaded so far.

    Args:
        draft: Current submission draft
        documents: Documents attached to the session

    Returns:
        List of checklist items with the slot key, label, file count, and
        whether the slot blocks submission
    """
    counts: Dict[str, int] = {}
    for doc in documents:
        counts[doc.document_type_key] = counts.get(doc.document_type_key, 0) + 1

    has_identity = any(counts.get(key) for key in IDENTITY_DOCUMENT_KEYS)
    has_accredited = any(count for key, count in counts.items() if is_accredited_key(key))

    checklist = []
    for group, slots in upload_slots(draft).items():
        for slot in slots:
            uploaded = counts.get(slot.key, 0)
            if group == 'identity':
                blocking = not has_identity
            elif group == 'accreditation':
                blocking = not has_accredited
            else:
                blocking = slot.required and uploaded == 0
            checklist.append({
                'item': slot.key,
                'label': slot.label,
                'group': group,
                'uploaded': uploaded,
                'status': 'complete' if uploaded else 'pending',
                'blocking': blocking
            })

    logger.debug(f"Checklist built: {sum(1 for c in checklist if c['blocking'])} blocking slots")
    return checklist

