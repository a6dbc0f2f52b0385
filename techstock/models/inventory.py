from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from techstock.shared.db.base import Base, BigIntPK

DEFAULT_RELATION_TYPE = "uses"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Subscription(Base):
    __tablename__ = "subscription"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    tenant_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ResourceGroup(Base):
    __tablename__ = "resource_group"
    __table_args__ = (
        UniqueConstraint("subscription_id", "name", name="uq_resource_group_subscription_name"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    subscription_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("subscription.id"), nullable=False, index=True
    )


class Application(Base):
    __tablename__ = "application"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    code: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)  # e.g. 'AP2411'
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_team: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Resource(Base):
    __tablename__ = "resource"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    azure_id: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)  # ARM resource id
    name: Mapped[str] = mapped_column(Text, nullable=False)
    resource_type: Mapped[str] = mapped_column("type", Text, nullable=False, index=True)  # e.g. 'Virtual machine'
    kind: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    subscription_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("subscription.id"), nullable=False, index=True
    )
    resource_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("resource_group.id"), nullable=False, index=True
    )
    # Whole tag map kept as a blob for the UI; resource_tag mirrors it row-per-key.
    tags_json: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )
    extended_location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    vendor: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)  # from tag 'Vendor'
    environment: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)  # 'PRD', 'UAT', ...
    provisioner: Mapped[Optional[str]] = mapped_column(String, nullable=True)  # 'Terraform', ...
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class ResourceTag(Base):
    __tablename__ = "resource_tag"
    __table_args__ = (
        Index("idx_resource_tag_key_val", "key", "value"),
    )

    resource_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True
    )
    key: Mapped[str] = mapped_column(Text, primary_key=True, index=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ResourceApplicationMap(Base):
    __tablename__ = "resource_application_map"

    resource_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("application.id", ondelete="CASCADE"), primary_key=True
    )
    relation_type: Mapped[str] = mapped_column(
        Text, primary_key=True, default=DEFAULT_RELATION_TYPE
    )  # 'uses' / 'owns' / 'managed-by'
