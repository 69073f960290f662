"""
Accredited Investor Sub-Flow

Investor type catalog and the claim model used by validation and
submission. The claim for the selected investor type is built fresh from the
draft every time, so values left behind by a previously selected type are
never looked at.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..models import AccreditedInvestor

logger = logging.getLogger(__name__)

INVESTOR_TYPES = ('income', 'net_worth', 'professional', 'entity')

ACCREDITED_INVESTOR_TYPES: Dict[str, Dict[str, Any]] = {
    'income': {
        'label': 'High Income Individual',
        'description': 'Individual with annual income exceeding $200,000 (or $300,000 joint)',
        'requirements': [
            'Annual income > $200,000 for individual or $300,000 for joint filers',
            'Income maintained for the last 2 years',
            'Reasonable expectation of same income level in current year',
            'Tax returns or W-2s as proof of income'
        ]
    },
    'net_worth': {
        'label': 'High Net Worth Individual',
        'description': 'Individual or joint net worth exceeding $1,000,000',
        'requirements': [
            'Net worth > $1,000,000 (excluding primary residence)',
            'Bank statements, investment account statements',
            'Real estate appraisals (excluding primary residence)',
            'Debt statements and liabilities'
        ]
    },
    'professional': {
        'label': 'Licensed Professional',
        'description': 'Holders of certain professional certifications',
        'requirements': [
            'Series 7, 65, or 82 licenses in good standing',
            'CPA, CFA, or other qualifying professional designations',
            'Current license or certification documentation',
            'Professional experience in financial services'
        ]
    },
    'entity': {
        'label': 'Qualified Entity',
        'description': 'Entities with assets > $5M or all equity owners are accredited',
        'requirements': [
            'Entity assets > $5,000,000',
            'OR all equity owners are accredited investors',
            'Audited financial statements',
            'Entity formation documents'
        ]
    }
}

PROFESSIONAL_CERTIFICATIONS = {
    'series_7': 'Series 7',
    'series_65': 'Series 65',
    'series_82': 'Series 82',
    'cpa': 'CPA',
    'cfa': 'CFA',
    'other': 'Other'
}

ENTITY_TYPES = {
    'corporation': 'Corporation',
    'partnership': 'Partnership',
    'llc': 'LLC',
    'trust': 'Trust',
    'bank': 'Bank',
    'insurance_company': 'Insurance Company',
    'investment_company': 'Investment Company'
}

COUNTRIES = {
    'US': 'United States',
    'CA': 'Canada',
    'GB': 'United Kingdom',
    'AU': 'Australia'
}


@dataclass(frozen=True)
class PendingClaim:
    """Accredited status claimed but no investor type chosen yet."""


@dataclass(frozen=True)
class TypedClaim:
    """Claim for one investor type, carrying only that type's value."""
    value: Optional[Union[float, str]]

    investor_type = ''
    field_name = ''
    wire_name = ''
    error_message = ''

    @property
    def is_complete(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class IncomeClaim(TypedClaim):
    investor_type = 'income'
    field_name = 'annual_income'
    wire_name = 'annualIncome'
    error_message = 'Annual income is required for income-based accreditation'


@dataclass(frozen=True)
class NetWorthClaim(TypedClaim):
    investor_type = 'net_worth'
    field_name = 'net_worth'
    wire_name = 'netWorth'
    error_message = 'Net worth is required for net worth-based accreditation'


@dataclass(frozen=True)
class ProfessionalClaim(TypedClaim):
    investor_type = 'professional'
    field_name = 'professional_certification'
    wire_name = 'professionalCertification'
    error_message = 'Professional certification is required'


@dataclass(frozen=True)
class EntityClaim(TypedClaim):
    investor_type = 'entity'
    field_name = 'entity_type'
    wire_name = 'entityType'
    error_message = 'Entity type is required'


AccreditationClaim = Optional[Union[PendingClaim, IncomeClaim, NetWorthClaim, ProfessionalClaim, EntityClaim]]

CLAIM_TYPES = {
    cls.investor_type: cls
    for cls in (IncomeClaim, NetWorthClaim, ProfessionalClaim, EntityClaim)
}

NUMERIC_FIELDS = {'annual_income', 'net_worth'}
CLAIM_FIELDS = {cls.field_name for cls in CLAIM_TYPES.values()}


def _coerce_number(raw: Any) -> Optional[float]:
    # Form posts deliver strings; zero counts as not entered
    if raw is None or isinstance(raw, bool):
        return None
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    return number or None


def _coerce_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def active_claim(investor: AccreditedInvestor) -> AccreditationClaim:
    """
    Build the claim for the currently selected investor type.

    Args:
        investor: Accredited investor part of the draft

    Returns:
        None when nothing is claimed, PendingClaim when claimed without a
        type, otherwise the typed claim for the selected type
    """
    if not investor.claimed:
        return None
    claim_cls = CLAIM_TYPES.get(investor.type or '')
    if claim_cls is None:
        return PendingClaim()

    raw = investor.values.get(claim_cls.field_name)
    if claim_cls.field_name in NUMERIC_FIELDS:
        return claim_cls(_coerce_number(raw))
    return claim_cls(_coerce_text(raw))


def apply_accreditation_update(investor: AccreditedInvestor, data: Dict[str, Any]) -> AccreditedInvestor:
    """
    Apply user input to the accredited investor section in place.

    Args:
        investor: Accredited investor part of the draft
        data: Any of 'claimed', 'type', and the type-specific field names

    Returns:
        The same investor object
    """
    if 'claimed' in data:
        claimed = data['claimed']
        if isinstance(claimed, str):
            claimed = claimed.strip().lower() in ('true', '1', 'yes', 'on')
        investor.claimed = bool(claimed)

    if 'type' in data:
        new_type = data['type'] or None
        if new_type is not None and new_type not in INVESTOR_TYPES:
            raise ValueError(f"Unknown accredited investor type '{new_type}'")
        if new_type != investor.type:
            logger.info(f"Accredited investor type changed: {investor.type} -> {new_type}")
        investor.type = new_type

    for field_name in CLAIM_FIELDS:
        if field_name in data:
            investor.values[field_name] = data[field_name]

    return investor


def get_investor_options() -> Dict[str, List[Dict[str, Any]]]:
    """Select options for the accreditation step and address country."""
    return {
        'investor_types': [
            {'value': key, **info} for key, info in ACCREDITED_INVESTOR_TYPES.items()
        ],
        'professional_certifications': [
            {'value': key, 'label': label} for key, label in PROFESSIONAL_CERTIFICATIONS.items()
        ],
        'entity_types': [
            {'value': key, 'label': label} for key, label in ENTITY_TYPES.items()
        ],
        'countries': [
            {'value': key, 'label': label} for key, label in COUNTRIES.items()
        ]
    }
