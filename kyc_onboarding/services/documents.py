"""
Document Intake Service for KYC Onboarding

Validates files dropped into a document slot and builds image previews.
A batch is processed concurrently; a bad file is rejected on its own and the
rest of the batch carries on.
"""

import asyncio
import base64
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from PIL import Image
from werkzeug.utils import secure_filename

from ..models import RawFile, UploadedDocument, ValidationError
from .document_catalog import DocumentTypeDescriptor, get_descriptor

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = 'document'


@dataclass
class IntakeResult:
    """Outcome of one batch dropped into one slot."""
    document_type_key: str
    accepted: List[UploadedDocument] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    ignored: bool = False

    def to_dict(self) -> Dict:
        return {
            'document_type_key': self.document_type_key,
            'accepted': [doc.to_dict() for doc in self.accepted],
            'errors': [err.to_dict() for err in self.errors],
            'ignored': self.ignored
        }


def _format_mb(size: int) -> str:
    return f"{size / 1024 / 1024:.2f}MB"


def validate_file(raw: RawFile, descriptor: DocumentTypeDescriptor) -> Optional[str]:
    """
    Check a file against a slot's accepted types and size limit.

    Returns:
        Error message, or None if the file is acceptable
    """
    if raw.mime_type not in descriptor.accepted_mime_types:
        return (
            f"Invalid file type: {raw.mime_type}. "
            f"Allowed types: {', '.join(descriptor.accepted_mime_types)}"
        )

    if raw.size > descriptor.max_size:
        return (
            f"File too large: {_format_mb(raw.size)}. "
            f"Maximum size: {_format_mb(descriptor.max_size)}"
        )

    return None


def _decode_preview(content: bytes, mime_type: str) -> str:
    with Image.open(io.BytesIO(content)) as image:
        image.verify()
    encoded = base64.b64encode(content).decode('ascii')
    return f"data:{mime_type};base64,{encoded}"


async def create_preview(raw: RawFile) -> Optional[str]:
    """
    Decode an image file into a data URI for display.

    Non-image files get no preview. A file that fails to decode is logged and
    also gets no preview; that is never an error for the user.
    """
    if not raw.mime_type.startswith('image/'):
        return None

    try:
        return await asyncio.to_thread(_decode_preview, raw.content, raw.mime_type)
    except Exception as e:
        logger.warning(f"Failed to create file preview for {raw.filename}: {e}")
        return None


class DocumentIntake:
    """
    Intake pipeline for one wizard session.

    Tracks which slots have a batch in flight and the preview task of every
    file still being processed, so a removed file can have its preview
    cancelled before it lands.
    """

    def __init__(self):
        self._busy_slots: Set[str] = set()
        self._pending: Dict[str, Tuple[UploadedDocument, asyncio.Task]] = {}
        self._removed: Set[str] = set()

    def is_busy(self, document_type_key: Optional[str] = None) -> bool:
        if document_type_key is None:
            return bool(self._busy_slots)
        return document_type_key in self._busy_slots

    def pending_documents(self) -> List[UploadedDocument]:
        return [doc for doc, _ in self._pending.values()]

    def cancel(self, document_id: str) -> bool:
        """
        Drop a file whose preview is still being generated.

        Returns:
            True if the document was in flight and has been cancelled
        """
        entry = self._pending.get(document_id)
        if entry is None:
            return False
        self._removed.add(document_id)
        entry[1].cancel()
        logger.info(f"Cancelled preview for removed document {document_id}")
        return True

    async def intake(
        self,
        raw: RawFile,
        document_type_key: str
    ) -> Optional[Union[UploadedDocument, ValidationError]]:
        """
        Validate a single file and build its document record.

        Args:
            raw: File as received from the upload zone
            document_type_key: Slot the file was dropped into

        Returns:
            UploadedDocument when accepted, ValidationError when rejected, or
            None when the file was removed while its preview was pending
        """
        descriptor = get_descriptor(document_type_key)

        error = validate_file(raw, descriptor)
        if error:
            logger.info(f"Rejected {raw.filename} for {document_type_key}: {error}")
            return ValidationError(
                filename=raw.filename,
                document_type_key=document_type_key,
                message=error
            )

        document = UploadedDocument(
            document_type_key=document_type_key,
            filename=secure_filename(raw.filename) or DEFAULT_FILENAME,
            content=raw.content,
            mime_type=raw.mime_type
        )

        task = asyncio.ensure_future(create_preview(raw))
        self._pending[document.document_id] = (document, task)
        try:
            document.preview_data_uri = await task
        except asyncio.CancelledError:
            if document.document_id not in self._removed:
                raise
            self._removed.discard(document.document_id)
            return None
        finally:
            self._pending.pop(document.document_id, None)

        return document

    async def intake_batch(
        self,
        raw_files: Sequence[RawFile],
        document_type_key: str
    ) -> IntakeResult:
        """
        Process every file dropped into a slot in one go.

        Files are handled concurrently and the batch is only returned once all
        of them have finished. A second batch for a slot that is still busy is
        ignored rather than interleaved.

        Args:
            raw_files: Files dropped into the slot
            document_type_key: Slot key (must exist in a catalog)

        Returns:
            IntakeResult with accepted documents and per-file errors
        """
        get_descriptor(document_type_key)
        result = IntakeResult(document_type_key=document_type_key)

        if document_type_key in self._busy_slots:
            logger.warning(f"Upload slot {document_type_key} busy, ignoring batch of {len(raw_files)}")
            result.ignored = True
            return result

        if not raw_files:
            return result

        self._busy_slots.add(document_type_key)
        try:
            outcomes = await asyncio.gather(
                *(self.intake(raw, document_type_key) for raw in raw_files)
            )
        finally:
            self._busy_slots.discard(document_type_key)

        for outcome in outcomes:
            if isinstance(outcome, UploadedDocument):
                result.accepted.append(outcome)
            elif isinstance(outcome, ValidationError):
                result.errors.append(outcome)

        logger.info(
            f"Batch for {document_type_key}: {len(result.accepted)} accepted, "
            f"{len(result.errors)} rejected"
        )
        return result
