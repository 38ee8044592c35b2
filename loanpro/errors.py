class LoanProError(Exception):
    """Base class for errors raised by LoanPro business logic."""


class LoanCalculationError(LoanProError):
    pass


class InvalidTransition(LoanProError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move application from '{current}' to '{target}'")


class DisbursementError(LoanProError):
    pass


class ReconciliationError(LoanProError):
    pass
