"""
Services module for KYC Onboarding
"""

from .document_catalog import (
    DocumentTypeDescriptor,
    BASELINE_DOCUMENT_TYPES,
    ACCREDITED_DOCUMENT_TYPES,
    ALLOWED_MIME_TYPES,
    get_descriptor,
    resolve_accreditation_documents,
    upload_slots,
    generate_checklist
)

from .accreditation import (
    ACCREDITED_INVESTOR_TYPES,
    active_claim,
    apply_accreditation_update,
    get_investor_options
)

from .validation import (
    validate_step,
    validate_all
)

from .documents import (
    DocumentIntake,
    IntakeResult,
    validate_file,
    create_preview
)

from .submission import (
    OutboundPayload,
    SubmissionClient,
    assemble,
    get_client as get_submission_client
)

from .status import (
    StatusClient,
    KYC_STATUSES,
    get_client as get_status_client
)

from .auth import (
    AuthProvider,
    get_provider as get_auth_provider
)

from .workflow import (
    OnboardingWizard,
    STEPS,
    get_step_info,
    WORKFLOW_EVENTS
)

__all__ = [
    # Document catalog
    'DocumentTypeDescriptor',
    'BASELINE_DOCUMENT_TYPES',
    'ACCREDITED_DOCUMENT_TYPES',
    'ALLOWED_MIME_TYPES',
    'get_descriptor',
    'resolve_accreditation_documents',
    'upload_slots',
    'generate_checklist',
    # Accreditation
    'ACCREDITED_INVESTOR_TYPES',
    'active_claim',
    'apply_accreditation_update',
    'get_investor_options',
    # Validation
    'validate_step',
    'validate_all',
    # Document intake
    'DocumentIntake',
    'IntakeResult',
    'validate_file',
    'create_preview',
    # Submission
    'OutboundPayload',
    'SubmissionClient',
    'assemble',
    'get_submission_client',
    # Status
    'StatusClient',
    'KYC_STATUSES',
    'get_status_client',
    # Auth
    'AuthProvider',
    'get_auth_provider',
    # Workflow
    'OnboardingWizard',
    'STEPS',
    'get_step_info',
    'WORKFLOW_EVENTS',
]
