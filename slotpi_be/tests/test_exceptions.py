import pytest
from slotpi_be.exceptions import (
    AppException,
    ValidationException,
    NotFoundException,
    InsufficientFundsException,
    GameLogicException,
    InvalidBetException,
    BetTooLargeException,
    InvalidPicksException,
    InsufficientBalanceException,
    SpinNotFoundException,
    NoBonusBoardException,
    BonusAlreadyClaimedException,
    PaymentProviderException,
)
from slotpi_be.error_codes import ErrorCodes

def test_app_exception_instantiation():
    exc = AppException(
        error_code="TEST_001",
        status_message="Test message",
        status_code=400,
        details={"field": "value"},
        action_button={"text": "Retry", "actionType": "RETRY_ACTION"}
    )

    assert exc.error_code == "TEST_001"
    assert exc.status_message == "Test message"
    assert exc.status_code == 400
    assert exc.details == {"field": "value"}
    assert exc.action_button == {"text": "Retry", "actionType": "RETRY_ACTION"}
    assert str(exc) == "Test message"

def test_app_exception_defaults():
    exc = AppException(error_code="TEST_002", status_message="Default test", status_code=500)
    assert exc.details == {}
    assert exc.action_button == {}

def test_general_exceptions():
    assert ValidationException().status_code == 422
    assert ValidationException().error_code == ErrorCodes.VALIDATION_ERROR
    assert NotFoundException().status_code == 404
    assert InsufficientFundsException().error_code == ErrorCodes.INSUFFICIENT_FUNDS
    assert GameLogicException(status_code=409).status_code == 409

@pytest.mark.parametrize("exc_class, base_class, error_code, status_code", [
    (InvalidBetException, ValidationException, ErrorCodes.INVALID_BET, 422),
    (BetTooLargeException, ValidationException, ErrorCodes.BET_TOO_LARGE, 422),
    (InvalidPicksException, ValidationException, ErrorCodes.INVALID_PICKS, 422),
    (InsufficientBalanceException, InsufficientFundsException, ErrorCodes.INSUFFICIENT_BALANCE, 400),
    (SpinNotFoundException, NotFoundException, ErrorCodes.SPIN_NOT_FOUND, 404),
    (NoBonusBoardException, GameLogicException, ErrorCodes.NO_BONUS_BOARD, 400),
    (BonusAlreadyClaimedException, GameLogicException, ErrorCodes.BONUS_ALREADY_CLAIMED, 409),
])
def test_domain_exceptions(exc_class, base_class, error_code, status_code):
    exc = exc_class(details={"spin_id": "spin_1"})
    assert isinstance(exc, base_class)
    assert exc.error_code == error_code
    assert exc.status_code == status_code
    assert exc.details == {"spin_id": "spin_1"}
    with pytest.raises(AppException):
        raise exc

def test_insufficient_balance_offers_deposit():
    exc = InsufficientBalanceException()
    assert exc.action_button["actionPayload"] == "/deposit"

def test_payment_provider_exception_carries_provider_response():
    exc = PaymentProviderException(status_message="Pi API error 404", provider_status=404, provider_body="not found")
    assert exc.status_code == 502
    assert exc.error_code == ErrorCodes.PAYMENT_PROVIDER_ERROR
    assert exc.provider_status == 404
    assert exc.provider_body == "not found"
    assert str(exc) == "Pi API error 404"
