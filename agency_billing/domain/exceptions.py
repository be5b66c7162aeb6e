"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Entity id does not resolve inside the caller's agency"""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DuplicateObligationError(DomainException):
    """A payment already exists for (contract, schedule, due date)"""

    pass


class InvalidStateTransitionError(DomainException):
    """Status would move backward, or the entity can no longer be deleted"""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from {current!r} to {target!r}")


class ValidationError(DomainException):
    """Malformed amount, day of month, currency or missing foreign key"""

    pass


class TransactionFailureError(DomainException):
    """The atomic write did not complete; retrying the call is safe"""

    pass
