"""Domain exceptions for IAM bounded context.

These exceptions represent errors that can occur while reconciling or
reading identities. They are raised by the application and infrastructure
layers and mapped to HTTP responses by the presentation layer.
"""


class InvalidClaimError(Exception):
    """Raised when an identity claim has no usable subject id.

    This is an integration error: a verified token always carries a subject.
    It is raised before any encryption or storage work happens.
    """

    pass


class PersistenceError(Exception):
    """Raised when the identity store cannot complete an operation.

    Covers connectivity failures and constraint violations. The upsert is
    all-or-nothing, so a failed call left storage untouched and is safe to
    retry; retrying is left to the caller.
    """

    pass


class CorruptedRecordError(PersistenceError):
    """Raised when a stored identity cannot be decrypted.

    Usually means the row was written under a key that has since been
    rotated. Carries the subject id and the column that failed so the caller
    can tell a rotation from a one-off corruption.
    """

    def __init__(self, subject_id: str, field: str):
        super().__init__(
            f"Stored identity {subject_id} has an unreadable {field} field"
        )
        self.subject_id = subject_id
        self.field = field
