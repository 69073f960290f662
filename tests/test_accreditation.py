"""
Tests for the accredited investor sub-flow and document resolver
"""

import pytest

from kyc_onboarding.models import AccreditedInvestor, SubmissionDraft
from kyc_onboarding.services.accreditation import (
    EntityClaim,
    IncomeClaim,
    NetWorthClaim,
    PendingClaim,
    ProfessionalClaim,
    active_claim,
    apply_accreditation_update,
    get_investor_options
)
from kyc_onboarding.services.document_catalog import (
    ACCREDITED_DOCUMENT_TYPES,
    generate_checklist,
    get_descriptor,
    resolve_accreditation_documents,
    upload_slots
)

from .conftest import make_document


class TestActiveClaim:

    def test_unclaimed_has_no_claim(self):
        investor = AccreditedInvestor(claimed=False, type='income', values={'annual_income': 300000})
        assert active_claim(investor) is None

    def test_claimed_without_type_is_pending(self):
        assert active_claim(AccreditedInvestor(claimed=True)) == PendingClaim()

    @pytest.mark.parametrize('investor_type, field_name, raw, expected', [
        ('income', 'annual_income', '250000', IncomeClaim(250000.0)),
        ('net_worth', 'net_worth', 1500000, NetWorthClaim(1500000.0)),
        ('professional', 'professional_certification', ' series_7 ', ProfessionalClaim('series_7')),
        ('entity', 'entity_type', 'llc', EntityClaim('llc')),
    ])
    def test_typed_claim_carries_only_its_value(self, investor_type, field_name, raw, expected):
        investor = AccreditedInvestor(claimed=True, type=investor_type, values={
            'annual_income': 1, 'net_worth': 2, 'professional_certification': 'cpa', 'entity_type': 'trust',
        })
        investor.values[field_name] = raw
        assert active_claim(investor) == expected

    @pytest.mark.parametrize('raw', [None, '', '0', 0, 'lots', True])
    def test_missing_or_unusable_income(self, raw):
        investor = AccreditedInvestor(claimed=True, type='income', values={'annual_income': raw})
        claim = active_claim(investor)
        assert isinstance(claim, IncomeClaim)
        assert not claim.is_complete

    def test_switching_type_keeps_stale_values_out(self):
        investor = AccreditedInvestor(claimed=True)
        apply_accreditation_update(investor, {'type': 'income', 'annual_income': 400000})
        apply_accreditation_update(investor, {'type': 'entity'})

        claim = active_claim(investor)
        assert isinstance(claim, EntityClaim)
        assert not claim.is_complete
        # Still remembered if the user switches back
        assert investor.values['annual_income'] == 400000


class TestApplyUpdate:

    def test_claimed_from_form_string(self):
        investor = AccreditedInvestor()
        apply_accreditation_update(investor, {'claimed': 'true'})
        assert investor.claimed is True
        apply_accreditation_update(investor, {'claimed': 'false'})
        assert investor.claimed is False

    def test_empty_type_clears_selection(self):
        investor = AccreditedInvestor(claimed=True, type='income')
        apply_accreditation_update(investor, {'type': ''})
        assert investor.type is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            apply_accreditation_update(AccreditedInvestor(), {'type': 'crypto_whale'})

    def test_unrelated_keys_ignored(self):
        investor = AccreditedInvestor()
        apply_accreditation_update(investor, {'favourite_colour': 'blue'})
        assert investor.values == {}


class TestResolver:

    def test_all_accreditation_slots_before_type_chosen(self):
        slots = resolve_accreditation_documents(AccreditedInvestor(claimed=True))
        assert slots == list(ACCREDITED_DOCUMENT_TYPES)

    def test_only_matching_slot_once_type_chosen(self):
        slots = resolve_accreditation_documents(AccreditedInvestor(claimed=True, type='net_worth'))
        assert [slot.key for slot in slots] == ['accredited_net_worth']

    def test_upload_slots_hide_accreditation_when_not_claimed(self):
        slots = upload_slots(SubmissionDraft())
        assert [s.key for s in slots['identity']] == ['passport', 'drivers_license', 'national_id']
        assert [s.key for s in slots['additional']] == ['proof_of_address', 'bank_statement']
        assert slots['accreditation'] == []

    def test_descriptor_lookup(self):
        descriptor = get_descriptor('proof_of_address')
        assert descriptor.required
        assert descriptor.max_size == 10 * 1024 * 1024
        with pytest.raises(KeyError):
            get_descriptor('selfie')

    def test_checklist_tracks_blocking_slots(self):
        draft = SubmissionDraft()
        draft.accredited_investor.claimed = True
        draft.accredited_investor.type = 'income'
        checklist = {item['item']: item for item in generate_checklist(draft, [make_document('passport')])}

        assert checklist['passport']['status'] == 'complete'
        assert not checklist['national_id']['blocking']
        assert checklist['proof_of_address']['blocking']
        assert not checklist['bank_statement']['blocking']
        assert checklist['accredited_income']['blocking']
        assert 'accredited_entity' not in checklist

    def test_checklist_accepts_document_from_earlier_type(self):
        draft = SubmissionDraft()
        draft.accredited_investor.claimed = True
        draft.accredited_investor.type = 'net_worth'
        documents = [make_document('accredited_income')]
        checklist = {item['item']: item for item in generate_checklist(draft, documents)}

        assert checklist['accredited_net_worth']['status'] == 'pending'
        assert not checklist['accredited_net_worth']['blocking']


def test_investor_options():
    options = get_investor_options()
    assert [t['value'] for t in options['investor_types']] == ['income', 'net_worth', 'professional', 'entity']
    assert {'value': 'series_65', 'label': 'Series 65'} in options['professional_certifications']
    assert {'value': 'llc', 'label': 'LLC'} in options['entity_types']
    assert options['countries'][0] == {'value': 'US', 'label': 'United States'}
