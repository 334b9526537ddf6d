"""SQLAlchemy ORM model for the identities table.

name and email hold field-cipher ciphertext. Nothing in this module encrypts
or decrypts; that is the identity service's job.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class IdentityModel(Base, TimestampMixin):
    """ORM model for identities table (one row per provider subject).

    Note: subject_id is VARCHAR(255) to accommodate provider-issued uids.
    """

    __tablename__ = "identities"

    subject_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        """Return string representation (ciphertext columns omitted)."""
        return f"<IdentityModel(subject_id={self.subject_id}, provider={self.provider})>"
