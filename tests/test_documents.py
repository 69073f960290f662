"""
Tests for the document intake pipeline
"""

import asyncio

import pytest

from kyc_onboarding.models import UploadedDocument, ValidationError
from kyc_onboarding.services import documents
from kyc_onboarding.services.document_catalog import DocumentTypeDescriptor, MAX_DOCUMENT_SIZE, get_descriptor
from kyc_onboarding.services.documents import DocumentIntake, create_preview, validate_file

from .conftest import make_raw, png_bytes


class TestValidateFile:

    def test_accepts_pdf_within_limit(self):
        assert validate_file(make_raw(), get_descriptor('passport')) is None

    def test_rejects_unsupported_type(self):
        error = validate_file(make_raw('cv.docx', mime_type='application/msword'), get_descriptor('passport'))
        assert error.startswith('Invalid file type: application/msword')

    def test_rejects_oversized_file(self):
        raw = make_raw(content=b'0' * (MAX_DOCUMENT_SIZE + 1))
        error = validate_file(raw, get_descriptor('passport'))
        assert error == 'File too large: 10.00MB. Maximum size: 10.00MB'

    def test_limit_comes_from_descriptor(self):
        small_slot = DocumentTypeDescriptor(key='tiny', label='Tiny', description='', max_size=100)
        assert 'File too large' in validate_file(make_raw(content=b'x' * 101), small_slot)
        assert validate_file(make_raw(content=b'x' * 100), small_slot) is None


class TestPreview:

    def test_image_preview_is_data_uri(self):
        preview = asyncio.run(create_preview(make_raw('id.png', png_bytes(), 'image/png')))
        assert preview.startswith('data:image/png;base64,')

    def test_pdf_has_no_preview(self):
        assert asyncio.run(create_preview(make_raw())) is None

    def test_undecodable_image_has_no_preview(self, caplog):
        preview = asyncio.run(create_preview(make_raw('broken.jpg', b'not really a jpeg', 'image/jpeg')))
        assert preview is None
        assert 'Failed to create file preview' in caplog.text


class TestIntake:

    def test_single_file_accepted(self):
        document = asyncio.run(DocumentIntake().intake(make_raw('id.png', png_bytes(), 'image/png'), 'passport'))
        assert isinstance(document, UploadedDocument)
        assert document.document_type_key == 'passport'
        assert document.preview_data_uri.startswith('data:image/png')

    def test_single_file_rejected(self):
        outcome = asyncio.run(DocumentIntake().intake(make_raw(mime_type='text/plain'), 'passport'))
        assert isinstance(outcome, ValidationError)
        assert outcome.filename == 'scan.pdf'

    def test_filename_is_sanitised(self):
        document = asyncio.run(DocumentIntake().intake(make_raw('../../etc/my scan.pdf'), 'passport'))
        assert document.filename == 'etc_my_scan.pdf'

    def test_broken_image_still_accepted(self):
        document = asyncio.run(
            DocumentIntake().intake(make_raw('front.png', b'garbage', 'image/png'), 'drivers_license')
        )
        assert isinstance(document, UploadedDocument)
        assert document.preview_data_uri is None

    def test_unknown_slot(self):
        with pytest.raises(KeyError):
            asyncio.run(DocumentIntake().intake_batch([make_raw()], 'selfie'))


class TestBatch:

    def test_partial_failure_keeps_good_files(self):
        batch = [
            make_raw('front.png', png_bytes(), 'image/png'),
            make_raw('back.png', png_bytes(), 'image/png'),
            make_raw('license.pdf'),
            make_raw('huge.pdf', b'0' * (MAX_DOCUMENT_SIZE + 1)),
        ]
        result = asyncio.run(DocumentIntake().intake_batch(batch, 'drivers_license'))

        assert len(result.accepted) == 3
        assert len(result.errors) == 1
        assert result.errors[0].filename == 'huge.pdf'
        assert 'File too large' in result.errors[0].message
        assert {doc.document_type_key for doc in result.accepted} == {'drivers_license'}

    def test_empty_batch(self):
        result = asyncio.run(DocumentIntake().intake_batch([], 'passport'))
        assert result.accepted == [] and result.errors == [] and not result.ignored

    def test_busy_slot_ignores_second_batch(self, monkeypatch):
        async def scenario():
            gate = asyncio.Event()

            async def slow_preview(raw):
                await gate.wait()
                return None

            monkeypatch.setattr(documents, 'create_preview', slow_preview)
            intake = DocumentIntake()

            first = asyncio.ensure_future(intake.intake_batch([make_raw()], 'passport'))
            await asyncio.sleep(0)
            assert intake.is_busy('passport')

            second = await intake.intake_batch([make_raw('other.pdf')], 'passport')
            other_slot_busy = intake.is_busy('proof_of_address')

            gate.set()
            return await first, second, other_slot_busy, intake.is_busy()

        first, second, other_slot_busy, still_busy = asyncio.run(scenario())
        assert len(first.accepted) == 1
        assert second.ignored and second.accepted == []
        assert not other_slot_busy
        assert not still_busy

    def test_removed_file_preview_is_cancelled(self, monkeypatch):

        async def scenario():
            gate = asyncio.Event()

            async def slow_preview(raw):
                await gate.wait()
                return 'data:image/png;base64,late'

            monkeypatch.setattr(documents, 'create_preview', slow_preview)
            intake = DocumentIntake()

            batch = asyncio.ensure_future(intake.intake_batch(
                [make_raw('keep.png', png_bytes(), 'image/png'), make_raw('drop.png', png_bytes(), 'image/png')],
                'passport'
            ))
            while len(intake.pending_documents()) < 2:
                await asyncio.sleep(0)
            pending = {doc.filename: doc for doc in intake.pending_documents()}
            assert intake.cancel(pending['drop.png'].document_id)

            gate.set()
            return await batch

        result = asyncio.run(scenario())
        assert [doc.filename for doc in result.accepted] == ['keep.png']
        assert result.accepted[0].preview_data_uri == 'data:image/png;base64,late'
        assert result.errors == []

    def test_cancel_unknown_document(self):
        assert DocumentIntake().cancel('DOC-missing') is False
