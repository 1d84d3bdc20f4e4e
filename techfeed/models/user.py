"""User model — local accounts and Google/GitHub-linked identities."""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from techfeed.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # None for OAuth-only accounts
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Provider subject ids, set once on first login through that provider
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    github_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    @property
    def providers(self) -> list[str]:
        linked = []
        if self.password_hash:
            linked.append("local")
        if self.google_id:
            linked.append("google")
        if self.github_id:
            linked.append("github")
        return linked

    def __repr__(self) -> str:
        return f"<User {self.email!r} providers={self.providers!r}>"
