import pytest
from rest_framework import status

from apps.common.exceptions import (
    LedgerError,
    ValidationError,
    AuthorizationError,
    StateConflictError,
    NotFoundError,
    NotHouseholdMemberError,
    MemberNotFoundError,
    status_for,
)


class TestStatusFor:
    """Tests for mapping error categories to HTTP status codes."""

    @pytest.mark.parametrize('exc, expected', [
        (ValidationError('bad'), status.HTTP_400_BAD_REQUEST),
        (AuthorizationError('no'), status.HTTP_403_FORBIDDEN),
        (NotHouseholdMemberError('no'), status.HTTP_403_FORBIDDEN),
        (StateConflictError('busy'), status.HTTP_409_CONFLICT),
        (NotFoundError('gone'), status.HTTP_404_NOT_FOUND),
        (MemberNotFoundError('gone'), status.HTTP_404_NOT_FOUND),
    ])
    def test_category_status(self, exc, expected):
        assert status_for(exc) == expected

    def test_bare_base_error_is_bad_request(self):
        assert status_for(LedgerError('unknown')) == status.HTTP_400_BAD_REQUEST

    def test_categories_share_base(self):
        for category in (ValidationError, AuthorizationError, StateConflictError, NotFoundError):
            assert issubclass(category, LedgerError)
