"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from verselink.core.database import Base

UNASSIGNED_COLLECTION_SLUG = "unorganized"
UNASSIGNED_COLLECTION_TITLE = "Unorganized"


class DocumentKind:
    """Allowed values of Document.kind."""

    PLAIN = "plain"
    REFERENCE = "reference"
    OTHER = "other"


class Collection(Base):
    """Named group of documents ("thread") owned by a user.

    Each owner also has exactly one unassigned collection (slug
    ``unorganized``) that is never linked to explicitly.
    """

    __tablename__ = "collections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str | None] = mapped_column(String, nullable=True)
    is_unassigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=datetime.utcnow
    )

    memberships: Mapped[list["DocumentCollection"]] = relationship(
        "DocumentCollection", back_populates="collection", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "slug", name="uq_collection_owner_slug"),
    )


class Document(Base):
    """A note. Reference documents hold the resolved text of a citation."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(
        String, nullable=False, default=DocumentKind.PLAIN
    )  # plain | reference | other
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=datetime.utcnow
    )

    memberships: Mapped[list["DocumentCollection"]] = relationship(
        "DocumentCollection", back_populates="document", cascade="all, delete-orphan"
    )
    reference_record: Mapped["ReferenceRecord | None"] = relationship(
        "ReferenceRecord", back_populates="document", uselist=False, cascade="all, delete-orphan"
    )


class DocumentCollection(Base):
    """Membership of a document in an explicit collection."""

    __tablename__ = "document_collections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    collection_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )

    document: Mapped["Document"] = relationship("Document", back_populates="memberships")
    collection: Mapped["Collection"] = relationship("Collection", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("document_id", "collection_id", name="uq_document_collection"),
        Index("ix_document_collections_document_id", "document_id"),
    )


class ReferenceRecord(Base):
    """Per-owner pointer from a normalized scripture key to its reference document."""

    __tablename__ = "reference_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    normalized_key: Mapped[str] = mapped_column(String, nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    book: Mapped[str] = mapped_column(String, nullable=False)
    chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    verse_start: Mapped[int] = mapped_column(Integer, nullable=False)
    verse_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    translation: Mapped[str] = mapped_column(String, nullable=False, default="NET")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )

    document: Mapped["Document"] = relationship("Document", back_populates="reference_record")

    __table_args__ = (
        UniqueConstraint("owner_id", "normalized_key", name="uq_reference_owner_key"),
        Index("ix_reference_records_owner_id", "owner_id"),
    )
