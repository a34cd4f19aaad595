"""
DirectoryUser model — the application profile row.

Each DirectoryUser is one human's profile in the Directory Store. It is
separate from the identity provider account that actually verifies
passwords:

  - DirectoryUser answers "who is this person and what roles do they hold?"
  - The identity provider account answers "can this login authenticate?"

identity_ref (stored in the auth_uid column) is the only link between the
two. It is null until the first password is provisioned and may go stale if
the provider account is deleted out of band.

Role fields are heterogeneous: any of role, roles, sub_role and sub_roles may
hold a single token, a JSON array encoded as text, or a comma-separated list.
See app.services.roles for the normalization.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class DirectoryUser(Base):
    __tablename__ = "users"

    # Assigned by the store, never reused
    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
    )

    # Display handle; only used to derive a login identifier
    username: Mapped[str | None] = mapped_column(
        String(150),
        nullable=True,
    )

    # Opaque reference to the bound identity provider account
    identity_ref: Mapped[str | None] = mapped_column(
        "auth_uid",
        String(64),
        nullable=True,
        index=True,
    )

    role: Mapped[str | None] = mapped_column(Text, nullable=True)
    roles: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_role: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_roles: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
