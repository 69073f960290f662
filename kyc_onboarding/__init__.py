"""
KYC Onboarding Wizard

Multi-step identity verification workflow for the investment marketplace:
personal and address details, identity documents, accredited investor
claims, and submission to the verification backend.
"""

__version__ = "0.1.0"
