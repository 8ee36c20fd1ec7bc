"""SQLAlchemy building blocks for mirrored entity types.

Integrators declare their local types by subclassing Base together with one
of the mixins below, e.g.:

    class Post(ResourceMixin, Base):
        __tablename__ = "posts"

        title: Mapped[str | None] = mapped_column(String(255))
        tags: Mapped[bytes | None] = mapped_column(LargeBinary)
"""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all mirrored models."""


class ResourceMixin:
    """Columns shared by every mirrored entry or asset.

    The identifier is the remote record's id and serves as natural key.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)


class AssetMixin(ResourceMixin):
    """Asset metadata columns.

    Attribute names match the remote asset fields and the sub-fields of
    "file" and "file.details.image", so derived mappings pick them up.
    """

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    fileName: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contentType: Mapped[str | None] = mapped_column(String(128), nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SpaceMixin:
    """Singleton record holding the continuation token."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    syncToken: Mapped[str | None] = mapped_column(Text, nullable=True)
