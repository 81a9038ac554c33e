"""Errors raised by the storage layer."""


class StorageError(Exception):
    """Base class for storage failures."""


class NotFoundError(StorageError):
    """An update targeted a record that does not exist."""

    def __init__(self, entity: str, record_id: int):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} with ID {record_id} not found")


class ConstraintViolationError(StorageError):
    """A write would break a uniqueness rule or reference a missing record."""
