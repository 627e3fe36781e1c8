import pytest

from notifyhub.core.exceptions.handlers import _STATUS_CODES, _map_to_status_code
from notifyhub.domain import exceptions
from notifyhub.domain.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from notifyhub.domain.notification import (
    InvalidCursorError,
    NotificationAccessDeniedError,
    NotificationNotFoundError,
    WorkspaceNotFoundError,
)
from notifyhub.domain.preferences import PreferencesValidationError

pytestmark = pytest.mark.unit


class TestExceptionMapping:
    """Tests for domain exception to HTTP status code mapping."""

    @pytest.mark.parametrize(
        ("exception", "expected_status"),
        [
            (NotFoundError("Notification", "n1"), 404),
            (ValidationError("bad"), 422),
            (ConflictError("changed"), 409),
            (UnauthorizedError("who"), 401),
            (ForbiddenError("no"), 403),
            (DomainError("unknown"), 500),
        ],
        ids=["not_found", "validation", "conflict", "unauthorized", "forbidden", "generic"],
    )
    def test_base_errors(self, exception: DomainError, expected_status: int) -> None:
        assert _map_to_status_code(exception) == expected_status

    def test_notification_errors_follow_their_base(self) -> None:
        assert _map_to_status_code(NotificationNotFoundError("n1")) == 404
        assert _map_to_status_code(WorkspaceNotFoundError("ws1")) == 404
        assert _map_to_status_code(NotificationAccessDeniedError("u1", "ws1")) == 403
        assert _map_to_status_code(PreferencesValidationError("bad tz")) == 422
        assert _map_to_status_code(InvalidCursorError("garbage")) == 422

    def test_every_base_error_has_a_status(self) -> None:
        declared = {
            obj for obj in vars(exceptions).values()
            if isinstance(obj, type) and issubclass(obj, DomainError) and obj is not DomainError
        }
        assert declared == {error_type for error_type, _ in _STATUS_CODES}
