"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    def __init__(self, message: str, item_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.item_id = item_id


class InvalidRecurrenceError(DomainException):
    """Recurring item definition cannot be expanded (missing anchors, bad day-of-month)"""

    pass


class InvalidDebtError(DomainException):
    """Debt definition has no usable payment schedule"""

    pass


class InvalidGoalError(DomainException):
    """Goal definition is inconsistent (deadline before creation)"""

    pass


class InvalidWindowError(DomainException):
    """Requested date window ends before it starts"""

    pass
