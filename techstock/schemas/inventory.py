"""
Catalog Schemas

Request/response models for subscriptions, resource groups, applications
and resources. Update models carry only optional fields: a field that is
present overwrites, an absent (or null) one is left untouched.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is not None and "@" not in value:
        raise ValueError("Invalid email format")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    # azure_id is unique; blank means absent
    if value is not None and not value.strip():
        return None
    return value


# ============================================================
# Subscriptions
# ============================================================


class SubscriptionCreate(BaseModel):
    name: str = Field(min_length=1)
    tenant_id: Optional[str] = None


class SubscriptionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    tenant_id: Optional[str] = None


class SubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    tenant_id: Optional[str] = None


# ============================================================
# Resource groups
# ============================================================


class ResourceGroupCreate(BaseModel):
    name: str = Field(min_length=1)
    subscription_id: int


class ResourceGroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    subscription_id: Optional[int] = None


class ResourceGroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    subscription_id: int


# ============================================================
# Applications
# ============================================================


class ApplicationCreate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = None
    owner_team: Optional[str] = None
    owner_email: Optional[str] = None

    _email = field_validator("owner_email")(_check_email)


class ApplicationUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = None
    owner_team: Optional[str] = None
    owner_email: Optional[str] = None

    _email = field_validator("owner_email")(_check_email)


class ApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: Optional[str] = None
    name: Optional[str] = None
    owner_team: Optional[str] = None
    owner_email: Optional[str] = None


class ApplicationLinkRead(BaseModel):
    resource_id: int
    application_id: int
    relation_type: str


# ============================================================
# Resources
# ============================================================


class ResourceCreate(BaseModel):
    azure_id: Optional[str] = None
    name: str = Field(min_length=1)
    resource_type: str = Field(min_length=1)
    kind: Optional[str] = None
    location: str = Field(min_length=1)
    subscription_id: int
    resource_group_id: int
    tags: Dict[str, str] = Field(default_factory=dict)
    extended_location: Optional[str] = None
    vendor: Optional[str] = None
    environment: Optional[str] = None
    provisioner: Optional[str] = None

    _azure_id = field_validator("azure_id")(_blank_to_none)


class ResourceUpdate(BaseModel):
    azure_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    resource_type: Optional[str] = Field(default=None, min_length=1)
    kind: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=1)
    subscription_id: Optional[int] = None
    resource_group_id: Optional[int] = None
    tags: Optional[Dict[str, str]] = None
    extended_location: Optional[str] = None
    vendor: Optional[str] = None
    environment: Optional[str] = None
    provisioner: Optional[str] = None

    _azure_id = field_validator("azure_id")(_blank_to_none)


class ResourceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    azure_id: Optional[str] = None
    name: str
    resource_type: str
    kind: Optional[str] = None
    location: str
    subscription_id: int
    resource_group_id: int
    tags_json: Dict[str, Any] = Field(default_factory=dict)
    extended_location: Optional[str] = None
    vendor: Optional[str] = None
    environment: Optional[str] = None
    provisioner: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CountBucket(BaseModel):
    label: str
    count: int


class ResourceStatistics(BaseModel):
    by_type: List[CountBucket]
    by_location: List[CountBucket]
    by_environment: List[CountBucket]


class CatalogStats(BaseModel):
    total_resources: int
    total_subscriptions: int
    total_resource_groups: int
    total_applications: int
