from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BridgeModel(BaseModel):
    """
    Base for Bridge records. Bridge speaks camelCase JSON, models use snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Page(BaseModel, Generic[T]):
    """
    One server response: a slice of a larger collection plus the metadata
    needed to locate the next slice.
    """

    items: list[T] = Field(default_factory=list)
    """
    Items of this page in server order
    """

    total: int | None = None
    """
    Grand total of items across all pages (offset-counted endpoints only)
    """

    next_page_token: str | None = None
    """
    Opaque continuation token (token-based endpoints only), None on the last page
    """


class AccountStatus(Enum):
    UNVERIFIED = "unverified"
    """
    Account was created but email or phone was not verified yet
    """
    ENABLED = "enabled"
    """
    Account can sign in
    """
    DISABLED = "disabled"
    """
    Account was disabled by an administrator
    """

    UNKNOWN = "unknown"
    """
    Status not known to this client, should not happen in normal operation.
    """

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            value = value.lower()
            return next((m for m in cls if m.value == value), cls.UNKNOWN)

        return cls.UNKNOWN


class UploadStatus(Enum):
    REQUESTED = "requested"
    VALIDATION_IN_PROGRESS = "validation_in_progress"
    VALIDATION_FAILED = "validation_failed"
    SUCCEEDED = "succeeded"
    DUPLICATE = "duplicate"

    UNKNOWN = "unknown"
    """
    Status not known to this client, should not happen in normal operation.
    """

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            value = value.lower()
            return next((m for m in cls if m.value == value), cls.UNKNOWN)

        return cls.UNKNOWN


class Phone(BridgeModel):
    number: str
    region_code: str | None = None


class AccountSummary(BridgeModel):
    """
    Class representing a summary of a participant account
    """

    id: str
    """
    User ID
    """
    app_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: Phone | None = None
    synapse_user_id: str | None = None
    status: AccountStatus | None = None
    created_on: datetime | None = None
    external_ids: dict[str, str] = Field(default_factory=dict)
    """
    External IDs keyed by study ID
    """
    study_ids: list[str] = Field(default_factory=list)
    data_groups: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)


class AccountSummaryList(BridgeModel):
    """
    Envelope of the account search endpoint (offset-counted)
    """

    items: list[AccountSummary] = Field(default_factory=list)
    total: int

    def to_page(self) -> Page[AccountSummary]:
        return Page[AccountSummary](items=self.items, total=self.total)


class Upload(BridgeModel):
    """
    Class representing an upload of health data
    """

    upload_id: str
    """
    Upload ID
    """
    record_id: str | None = None
    """
    ID of the health data record created from this upload (if it validated)
    """
    app_id: str | None = None
    health_code: str | None = None
    user_id: str | None = None
    status: UploadStatus = UploadStatus.UNKNOWN
    content_length: int | None = None
    content_md5: str | None = None
    content_type: str | None = None
    upload_date: date | None = None
    requested_on: datetime | None = None
    completed_on: datetime | None = None
    completed_by: str | None = None
    validation_message_list: list[str] = Field(default_factory=list)


class UploadList(BridgeModel):
    """
    Envelope of the app uploads endpoint (token-based)
    """

    items: list[Upload] = Field(default_factory=list)
    next_page_offset_key: str | None = None

    def to_page(self) -> Page[Upload]:
        return Page[Upload](items=self.items, next_page_token=self.next_page_offset_key)
