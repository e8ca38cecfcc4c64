from slotpi_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None, action_button=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.action_button = action_button if action_button is not None else {}

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None, action_button=None, error_code=ErrorCodes.VALIDATION_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class NotFoundException(AppException):
    def __init__(self, status_message="Resource not found", details=None, action_button=None, error_code=ErrorCodes.NOT_FOUND):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=404,
            details=details,
            action_button=action_button
        )

class InsufficientFundsException(AppException):
    def __init__(self, status_message="Insufficient funds", details=None, action_button=None, error_code=ErrorCodes.INSUFFICIENT_FUNDS):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=400,
            details=details,
            action_button=action_button
        )

class GameLogicException(AppException):
    def __init__(self, status_message="Game logic error", details=None, action_button=None, status_code=400, error_code=ErrorCodes.GAME_LOGIC_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=status_code, # Can be 400 or 409
            details=details,
            action_button=action_button
        )

# --- Spin and bonus signals surfaced to the boundary layer ---

class InvalidBetException(ValidationException):
    def __init__(self, status_message="Bet must be a positive integer number of credits.", details=None):
        super().__init__(status_message=status_message, details=details, error_code=ErrorCodes.INVALID_BET)

class BetTooLargeException(ValidationException):
    def __init__(self, status_message="Bet exceeds the maximum allowed.", details=None):
        super().__init__(status_message=status_message, details=details, error_code=ErrorCodes.BET_TOO_LARGE)

class InvalidPicksException(ValidationException):
    def __init__(self, status_message="Picks must be 3 distinct board indices.", details=None):
        super().__init__(status_message=status_message, details=details, error_code=ErrorCodes.INVALID_PICKS)

class InsufficientBalanceException(InsufficientFundsException):
    def __init__(self, status_message="Insufficient balance for this bet.", details=None):
        super().__init__(
            status_message=status_message,
            details=details,
            action_button={"text": "Deposit", "actionType": "NAVIGATE", "actionPayload": "/deposit"},
            error_code=ErrorCodes.INSUFFICIENT_BALANCE
        )

class SpinNotFoundException(NotFoundException):
    def __init__(self, status_message="Spin not found.", details=None):
        super().__init__(status_message=status_message, details=details, error_code=ErrorCodes.SPIN_NOT_FOUND)

class NoBonusBoardException(GameLogicException):
    def __init__(self, status_message="This spin did not award a bonus round.", details=None):
        super().__init__(status_message=status_message, details=details, error_code=ErrorCodes.NO_BONUS_BOARD)

class BonusAlreadyClaimedException(GameLogicException):
    def __init__(self, status_message="The bonus round for this spin has already been played.", details=None):
        super().__init__(status_message=status_message, details=details, status_code=409,
                         error_code=ErrorCodes.BONUS_ALREADY_CLAIMED)

class PaymentProviderException(AppException):
    def __init__(self, status_message="Payment provider request failed", details=None, provider_status=None, provider_body=None):
        super().__init__(
            error_code=ErrorCodes.PAYMENT_PROVIDER_ERROR,
            status_message=status_message,
            status_code=502,
            details=details
        )
        self.provider_status = provider_status
        self.provider_body = provider_body
