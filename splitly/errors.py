class LedgerError(Exception):
    status_code = 400
    default_detail = "Ledger operation failed."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationFailed(LedgerError):
    status_code = 422
    default_detail = "Invalid input."


class NotFound(LedgerError):
    status_code = 404
    default_detail = "Not found."


class MemberInUse(LedgerError):
    status_code = 409
    default_detail = "Cannot remove member with existing expenses or settlements."


class SelfSettlement(ValidationFailed):
    default_detail = "A person cannot pay themselves."


class OverSettlement(ValidationFailed):
    default_detail = "You cannot settle more than the owed amount."


class MissingRateError(LedgerError):
    default_detail = "Exchange rate not available for the selected currencies."
