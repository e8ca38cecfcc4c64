class ErrorCodes:
    GENERIC_ERROR = "GENERIC_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    GAME_LOGIC_ERROR = "GAME_LOGIC_ERROR"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"

    # Spin / bonus boundary signals
    INVALID_BET = "INVALID_BET"
    BET_TOO_LARGE = "BET_TOO_LARGE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    SPIN_NOT_FOUND = "SPIN_NOT_FOUND"
    NO_BONUS_BOARD = "NO_BONUS_BOARD"
    INVALID_PICKS = "INVALID_PICKS"
    BONUS_ALREADY_CLAIMED = "BONUS_ALREADY_CLAIMED"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    PAYMENT_PROVIDER_ERROR = "PAYMENT_PROVIDER_ERROR"
