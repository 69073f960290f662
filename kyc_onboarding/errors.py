"""
Exceptions raised by the KYC onboarding services.
"""

from typing import Optional


class KYCError(Exception):
    """Base class for onboarding errors."""


class AssemblyError(KYCError):
    """The draft does not have the shape the submission payload needs."""


class SubmissionError(KYCError):
    """The verification backend rejected or never received the submission."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StatusCheckError(KYCError):
    """The status service could not be reached or answered garbage."""
