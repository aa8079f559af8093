# clinic_biometrics/errors.py


class BiometricError(Exception):
    """Base class for errors raised by the biometric services."""


class InvalidInput(BiometricError):
    """Image payload is missing, undecodable or too small to be an image."""


class ExtractionUnavailable(BiometricError):
    """The extraction worker is missing, timed out, crashed or returned junk.

    Always recovered inside the extraction layer by falling back.
    """


class NotFound(BiometricError):
    """No active record for the requested user or document."""
