"""
Database Schemas for the Hamper Delivery Service

Each Pydantic model in the first half of this file corresponds to a collection.
The collection name is the lowercase class name (e.g., Recipient -> "recipient").
Documents are stored with snake_case keys; the API speaks camelCase
(firstName, hamperId, createdAt, ...) through the alias generator on CamelModel.
"""
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class DeliveryStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    VOLUNTEER = "VOLUNTEER"


# ===================== Collections =====================

class Address(CamelModel):
    street: str = Field(..., description="Street and number")
    city: str = Field(..., description="City, matched exactly in reports")
    state: Optional[str] = None
    postal_code: str = Field(..., description="Postal code")
    country: str = Field(..., description="Country")


class Recipient(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: Optional[str] = ""
    phone: Optional[str] = ""
    address: Address
    notes: Optional[str] = ""
    photo_url: Optional[str] = Field("", description="Reference to an uploaded photo")
    created_by: str = Field("system", description="User that created the record")


class HamperItem(CamelModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    category: Optional[str] = None


class Hamper(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = ""
    contents: List[HamperItem] = Field(..., description="Ordered list of items in the bundle")
    created_by: str = "system"


class Delivery(CamelModel):
    hamper_id: str = Field(..., min_length=1, description="Reference to hamper id (unchecked)")
    recipient_id: str = Field(..., min_length=1, description="Reference to recipient id (unchecked)")
    status: DeliveryStatus = DeliveryStatus.PENDING
    assigned_to: Optional[str] = Field(None, description="Reference to user id")
    scheduled_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = ""
    created_by: str = "system"


class EmailNotifications(CamelModel):
    delivery_updates: bool = True
    new_hampers: bool = False
    recipient_updates: bool = False


class SmsNotifications(CamelModel):
    delivery_updates: bool = False
    urgent_notifications: bool = True


class NotificationSettings(CamelModel):
    email: EmailNotifications = Field(default_factory=EmailNotifications)
    sms: SmsNotifications = Field(default_factory=SmsNotifications)


class User(CamelModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password_hash: str = Field(..., description="passlib hash, never returned")
    role: UserRole = UserRole.VOLUNTEER
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)


# ===================== Stored records (API output) =====================

class StoredDocument(CamelModel):
    id: str
    created_at: datetime
    updated_at: datetime


class RecipientRecord(Recipient, StoredDocument):
    pass


class HamperRecord(Hamper, StoredDocument):
    pass


class DeliveryRecord(Delivery, StoredDocument):
    pass


class UserProfile(StoredDocument):
    username: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ===================== Requests =====================

class PartialUpdate(CamelModel):
    """Base for PUT bodies: only the keys a client sends are applied.

    Fields that are mandatory on the stored record may be omitted but not
    explicitly nulled.
    """

    not_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.not_nullable:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RecipientUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("first_name", "last_name", "address")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None


class HamperUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("name", "contents")

    name: Optional[str] = None
    description: Optional[str] = None
    contents: Optional[List[HamperItem]] = None


class DeliveryUpdate(PartialUpdate):
    not_nullable: ClassVar[Tuple[str, ...]] = ("hamper_id", "recipient_id", "status")

    hamper_id: Optional[str] = None
    recipient_id: Optional[str] = None
    status: Optional[DeliveryStatus] = None
    assigned_to: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    # Checked against DeliveryStatus by the lifecycle, not here
    status: Optional[str] = None


class AssignRequest(CamelModel):
    user_id: Optional[str] = None


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.VOLUNTEER


class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    user: UserProfile
    token: str


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class PasswordChangeRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class EmailNotificationsUpdate(CamelModel):
    delivery_updates: Optional[bool] = None
    new_hampers: Optional[bool] = None
    recipient_updates: Optional[bool] = None


class SmsNotificationsUpdate(CamelModel):
    delivery_updates: Optional[bool] = None
    urgent_notifications: Optional[bool] = None


class NotificationSettingsUpdate(CamelModel):
    email: Optional[EmailNotificationsUpdate] = None
    sms: Optional[SmsNotificationsUpdate] = None


class NotificationSettingsResponse(CamelModel):
    message: str
    settings: NotificationSettings


# ===================== Reports =====================

class DeliveryReport(CamelModel):
    total_deliveries: int
    delivered_count: int
    pending_count: int
    failed_count: int
    deliveries_by_date: Dict[str, int]


class RecipientReport(CamelModel):
    total_recipients: int
    recipients_by_city: Dict[str, int]


class HamperReport(CamelModel):
    total_hampers: int
    hampers_by_category: Dict[str, int]


"""
Notes:
- Define new collections by creating new Pydantic classes in the Collections section.
- Report keys (dates, cities, categories) are data, so they are not camelCased.
"""
