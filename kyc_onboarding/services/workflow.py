"""
Onboarding Workflow for KYC Submission

Drives the user through the wizard steps, gating each advance on the step
validator, and hands the finished draft to the submission service.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import AssemblyError, StatusCheckError, SubmissionError
from ..models import ADDRESS_FIELDS, PERSONAL_FIELDS, RawFile, SubmissionDraft, UploadedDocument
from .accreditation import TypedClaim, active_claim, apply_accreditation_update
from .auth import AuthProvider, get_provider
from .document_catalog import generate_checklist, upload_slots
from .documents import DocumentIntake, IntakeResult
from .status import STATUS_NOT_STARTED, STATUS_UNKNOWN, StatusClient
from .status import get_client as get_status_client
from .submission import SubmissionClient, assemble
from .submission import get_client as get_submission_client
from .validation import STEP_REVIEW, validate_all, validate_step

logger = logging.getLogger(__name__)

# Step definitions
STEPS = {
    0: {'name': 'Personal', 'title': 'Personal Information'},
    1: {'name': 'Address', 'title': 'Address Information'},
    2: {'name': 'Documents', 'title': 'Document Upload'},
    3: {'name': 'Accreditation', 'title': 'Accredited Investor (Optional)'},
    4: {'name': 'Review', 'title': 'Review & Submit'},
}

FIRST_STEP = 0
LAST_STEP = STEP_REVIEW

SUCCESS_MESSAGE = 'KYC submission successful! Your documents are being reviewed.'
ALREADY_SUBMITTED_MESSAGE = 'You have already submitted KYC information. Current status: {status}'

# Workflow events for logging
WORKFLOW_EVENTS = {
    'started': 'Wizard started (verification status: {status})',
    'blocked': 'Wizard blocked, verification status is {status}',
    'step_advanced': 'Step {step} passed, moving to {next_step}',
    'step_blocked': 'Step {step} has {count} validation error(s)',
    'step_back': 'Back from {step} to {previous_step}',
    'documents_added': '{count} document(s) added to {slot}',
    'document_removed': 'Document {document_id} removed',
    'submitted': 'Submission {submission_id} accepted with {documents} document(s)',
    'submit_failed': 'Submission failed: {message}',
    'reset': 'Wizard reset'
}


def get_step_info(step_index: int) -> Dict[str, str]:
    """Get information about a step."""
    if step_index not in STEPS:
        return {'name': 'Unknown', 'title': 'Unknown'}
    return STEPS[step_index]


def _log_event(event: str, **kwargs) -> None:
    logger.info(WORKFLOW_EVENTS[event].format(**kwargs))


def _as_text(value: Any) -> str:
    # Form values may arrive as JSON numbers or null
    return '' if value is None else str(value)


class OnboardingWizard:
    """
    One KYC wizard session.

    Owns the draft, the uploaded documents, and the current step. Nothing is
    persisted: a new wizard starts empty and a successful submission or
    reset discards everything.
    """

    def __init__(
        self,
        submission_client: SubmissionClient = None,
        status_client: StatusClient = None,
        auth: AuthProvider = None,
        today: Callable[[], date] = date.today
    ):
        self.auth = auth or get_provider()
        self.submission_client = submission_client or get_submission_client()
        self.status_client = status_client or get_status_client()
        self._today = today

        self.intake = DocumentIntake()
        self.draft = SubmissionDraft()
        self.documents: List[UploadedDocument] = []
        self.current_step = FIRST_STEP
        self.errors: Dict[str, str] = {}

        self.kyc_status = STATUS_UNKNOWN
        self.blocked_notice: Optional[str] = None
        self.submitting = False
        self.error_message: Optional[str] = None
        self.success_message: Optional[str] = None
        self.last_submission: Optional[Dict[str, Any]] = None

    # ========== Lifecycle ==========

    def start(self) -> bool:
        """
        Check the verification status before the user begins.

        A user whose status is anything but not_started is blocked with a
        notice. If the status service cannot be reached the wizard carries on.

        Returns:
            True if the wizard may be used
        """
        try:
            status = self.status_client.get_status().get('status', STATUS_UNKNOWN)
        except StatusCheckError as e:
            logger.warning(f"Failed to check KYC status, proceeding: {e}")
            status = STATUS_UNKNOWN

        self.kyc_status = status
        if status not in (STATUS_NOT_STARTED, STATUS_UNKNOWN):
            self.blocked_notice = ALREADY_SUBMITTED_MESSAGE.format(status=status)
            _log_event('blocked', status=status)
            return False

        self.blocked_notice = None
        _log_event('started', status=status)
        return True

    @property
    def blocked(self) -> bool:
        return self.blocked_notice is not None

    @property
    def busy(self) -> bool:
        return self.submitting or self.intake.is_busy()

    def reset(self) -> None:
        """Discard the draft and all documents and go back to the first step."""
        for doc in self.intake.pending_documents():
            self.intake.cancel(doc.document_id)
        self.draft = SubmissionDraft()
        self.documents = []
        self.current_step = FIRST_STEP
        self.errors = {}
        _log_event('reset')

    # ========== Form input ==========

    def update_personal(self, **values: str) -> None:
        for name, value in values.items():
            if name not in PERSONAL_FIELDS:
                raise ValueError(f"Unknown personal field '{name}'")
            setattr(self.draft.personal, name, _as_text(value))

    def update_address(self, **values: str) -> None:
        for name, value in values.items():
            if name not in ADDRESS_FIELDS:
                raise ValueError(f"Unknown address field '{name}'")
            setattr(self.draft.address, name, _as_text(value))

    def set_accreditation(self, data: Dict[str, Any]) -> None:
        apply_accreditation_update(self.draft.accredited_investor, data)

    # ========== Validation & navigation ==========

    def validate(self, step_index: Optional[int] = None) -> Dict[str, str]:
        """Validate a step (default: the current one) and remember the errors."""
        if step_index is None:
            step_index = self.current_step
        self.errors = validate_step(step_index, self.draft, self.documents, self._today())
        return self.errors

    def next(self) -> bool:
        """
        Advance one step if the current step validates.

        Returns:
            True if the step index moved
        """
        if self.blocked:
            return False

        errors = self.validate()
        step_name = get_step_info(self.current_step)['name']
        if errors:
            _log_event('step_blocked', step=step_name, count=len(errors))
            return False
        if self.current_step >= LAST_STEP:
            return False

        self.current_step += 1
        _log_event('step_advanced', step=step_name, next_step=get_step_info(self.current_step)['name'])
        return True

    def back(self) -> bool:
        """Go back one step. Never validates."""
        if self.current_step <= FIRST_STEP:
            return False
        self.current_step -= 1
        self.errors = {}
        _log_event(
            'step_back',
            step=get_step_info(self.current_step + 1)['name'],
            previous_step=get_step_info(self.current_step)['name']
        )
        return True

    # ========== Documents ==========

    async def upload(self, raw_files: Sequence[RawFile], document_type_key: str) -> IntakeResult:
        """
        Run a batch through intake and add the accepted files to the session.

        The accepted documents are only merged once the whole batch is done.
        """
        self.error_message = None
        result = await self.intake.intake_batch(raw_files, document_type_key)

        if result.accepted:
            self.documents = self.documents + result.accepted
            _log_event('documents_added', count=len(result.accepted), slot=document_type_key)
        if result.errors:
            self.error_message = result.errors[-1].message

        return result

    def remove_document(self, document_id: str) -> bool:
        """Remove a document (or cancel one still being processed)."""
        if self.intake.cancel(document_id):
            _log_event('document_removed', document_id=document_id)
            return True

        remaining = [doc for doc in self.documents if doc.document_id != document_id]
        if len(remaining) == len(self.documents):
            return False
        self.documents = remaining
        _log_event('document_removed', document_id=document_id)
        return True

    # ========== Submission ==========

    async def submit(self) -> Dict[str, Any]:
        """
        Submit the draft from the review step.

        On success the wizard is reset and the current user refreshed. On
        failure everything is kept so the user can retry.

        Returns:
            Dict with 'status' ('success' or 'error'), 'message', and either
            'submission' or 'errors'
        """
        if self.blocked:
            return {'status': 'error', 'message': self.blocked_notice}
        if self.submitting:
            return {'status': 'error', 'message': 'Submission already in progress'}
        if self.current_step != LAST_STEP:
            return {'status': 'error', 'message': 'Complete all steps before submitting'}

        errors = self.validate(LAST_STEP)
        if errors:
            return {'status': 'error', 'message': 'Please fix the highlighted fields', 'errors': errors}

        self.submitting = True
        self.error_message = None
        self.success_message = None
        try:
            payload = assemble(self.draft, self.documents)
            response = await asyncio.to_thread(self.submission_client.submit, payload)
        except AssemblyError as e:
            self.error_message = str(e)
            _log_event('submit_failed', message=self.error_message)
            return {'status': 'error', 'message': self.error_message, 'retryable': False}
        except SubmissionError as e:
            self.error_message = str(e)
            _log_event('submit_failed', message=self.error_message)
            return {'status': 'error', 'message': self.error_message, 'retryable': True}
        finally:
            self.submitting = False

        if not isinstance(response, dict):
            response = {}
        submission = response.get('submission')
        if not isinstance(submission, dict):
            submission = {}
        self.last_submission = submission
        _log_event(
            'submitted',
            submission_id=submission.get('id'),
            documents=submission.get('documentsUploaded', len(self.documents))
        )

        self.success_message = SUCCESS_MESSAGE
        self.reset()
        try:
            await asyncio.to_thread(self.auth.refresh_user)
        except Exception as e:
            logger.warning(f"Failed to refresh user after submission: {e}")

        return {
            'status': 'success',
            'message': response.get('message', SUCCESS_MESSAGE),
            'submission': submission
        }

    # ========== Views ==========

    def review_summary(self) -> Dict[str, Any]:
        """Everything shown on the review step."""
        personal = self.draft.personal
        address = self.draft.address
        investor = self.draft.accredited_investor

        accreditation = None
        claim = active_claim(investor)
        if claim is not None:
            accreditation = {'type': investor.type}
            if isinstance(claim, TypedClaim) and claim.is_complete:
                accreditation[claim.field_name] = claim.value

        return {
            'personal': {
                'name': f"{personal.first_name} {personal.last_name}".strip(),
                'date_of_birth': personal.date_of_birth,
                'nationality': personal.nationality,
                'phone_number': personal.phone_number
            },
            'address': {
                'line1': address.street,
                'line2': f"{address.city}, {address.state} {address.postal_code}".strip(),
                'country': address.country
            },
            'documents': [
                {'filename': doc.filename, 'type': doc.document_type_key} for doc in self.documents
            ],
            'accredited_investor': accreditation,
            'outstanding': validate_all(self.draft, self.documents, self._today())
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_step': self.current_step,
            'step': get_step_info(self.current_step),
            'steps': [dict(info, index=idx) for idx, info in STEPS.items()],
            'draft': self.draft.to_dict(),
            'documents': [doc.to_dict() for doc in self.documents],
            'upload_slots': {
                group: [slot.to_dict() for slot in slots]
                for group, slots in upload_slots(self.draft).items()
            },
            'checklist': generate_checklist(self.draft, self.documents),
            'errors': self.errors,
            'kyc_status': self.kyc_status,
            'blocked_notice': self.blocked_notice,
            'busy': self.busy,
            'error_message': self.error_message,
            'success_message': self.success_message
        }
