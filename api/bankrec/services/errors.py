from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    field: str  # dotted path, e.g. "additions.0.amount"
    message: str


@dataclass(frozen=True)
class DuplicateConflict:
    bank_code: str
    month: str  # "YYYY-MM"
    statement_id: int

    @property
    def message(self) -> str:
        return (
            f"Statement #{self.statement_id} already exists for bank {self.bank_code} "
            f"in {self.month}. Change the bank or the date."
        )


@dataclass(frozen=True)
class ExportBlocked:
    statement_id: int
    reason: str


class PersistenceFailure(Exception):
    """The statement store rejected a write. Nothing was persisted."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
