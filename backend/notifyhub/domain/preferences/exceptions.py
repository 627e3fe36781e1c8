from notifyhub.domain.exceptions import ValidationError


class PreferencesValidationError(ValidationError):
    """Raised when a preferences patch carries invalid values."""

    pass
