"""
Tests for CreditService - credit RPC wrappers and require_credit.
"""

import pytest
from unittest.mock import MagicMock

from creatorscook.services.credit_service import (
    INSUFFICIENT_CREDITS_MESSAGE,
    CreditService,
    InsufficientCreditsError,
)


def _rpc_results(mock_db, results):
    """Map RPC names to the data they return."""
    def rpc(name, params):
        call = MagicMock()
        call.execute.return_value = MagicMock(data=results[name])
        return call
    mock_db.rpc.side_effect = rpc


@pytest.fixture
def mock_db():
    return MagicMock()


class TestCreditService:

    def test_has_sufficient_credits(self, mock_db):
        _rpc_results(mock_db, {"has_sufficient_credits": True})

        assert CreditService(mock_db).has_sufficient_credits("user-1") is True
        mock_db.rpc.assert_called_once_with("has_sufficient_credits", {"p_user_id": "user-1"})

    def test_scalar_wrapped_in_list(self, mock_db):
        _rpc_results(mock_db, {"get_credit_balance": [2]})
        assert CreditService(mock_db).get_credit_balance("user-1") == 2

    def test_balance_defaults_to_zero(self, mock_db):
        _rpc_results(mock_db, {"get_credit_balance": None})
        assert CreditService(mock_db).get_credit_balance("user-1") == 0

    def test_require_credit_consumes(self, mock_db):
        _rpc_results(mock_db, {"has_sufficient_credits": True, "consume_angle_credit": True})

        CreditService(mock_db).require_credit("user-1")

        names = [c.args[0] for c in mock_db.rpc.call_args_list]
        assert names == ["has_sufficient_credits", "consume_angle_credit"]

    def test_require_credit_without_balance(self, mock_db):
        _rpc_results(mock_db, {"has_sufficient_credits": False, "consume_angle_credit": True})

        with pytest.raises(InsufficientCreditsError) as exc_info:
            CreditService(mock_db).require_credit("user-1")

        assert str(exc_info.value) == INSUFFICIENT_CREDITS_MESSAGE
        assert mock_db.rpc.call_count == 1

    def test_require_credit_when_consume_refused(self, mock_db):
        _rpc_results(mock_db, {"has_sufficient_credits": True, "consume_angle_credit": False})

        with pytest.raises(InsufficientCreditsError):
            CreditService(mock_db).require_credit("user-1")
