"""
Shared Pydantic schemas used across the application.

Wire format is camelCase with an `_id` identifier; attributes stay snake_case
(populate_by_name) so the same models validate request bodies, ORM objects,
and their own serialized output.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel

from shared.config.constants import Limits, RegistrationStatus, UserRole
from shared.utils.datetime_utils import as_utc
from shared.utils.validators import validate_avatar_url, validate_password_strength

UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class APIModel(BaseModel):
    """Base model: camelCase aliases, ORM-friendly."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Trimmed, non-blank strings
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=Limits.NAME_MAX_LENGTH)]
TitleStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=Limits.TITLE_MAX_LENGTH)]
CategoryNameStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=Limits.CATEGORY_NAME_MAX_LENGTH)
]


# =============================================================================
# Common Types
# =============================================================================


class SuccessResponse(APIModel):
    success: bool = True
    message: str


class MessageResponse(APIModel):
    message: str


class ErrorDetail(APIModel):
    field: str
    message: str


class ErrorResponse(APIModel):
    """Documented shape of every error body."""

    success: bool = False
    message: str
    code: str | None = None
    errors: list[ErrorDetail] | None = None


# =============================================================================
# References (denormalised embeds)
# =============================================================================


class CategoryRef(APIModel):
    id: int = Field(alias="_id")
    name: str


class CategoryDetailRef(CategoryRef):
    description: str | None = None


class UserRef(APIModel):
    id: int = Field(alias="_id")
    name: str


class UserPublic(UserRef):
    """Sender/receiver embed used by chat payloads."""

    avatar: str | None = None
    role: str


class ParticipantUser(UserRef):
    email: str
    avatar: str | None = None


class CompetitionSummary(APIModel):
    """Registered competition as shown on the caller's profile."""

    id: int = Field(alias="_id")
    title: str
    start_date: UTCDateTime
    end_date: UTCDateTime
    category: CategoryRef | None = None


# =============================================================================
# Authentication Schemas
# =============================================================================


class RegisterRequest(APIModel):
    name: NameStr
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        return validate_password_strength(value)


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class RefreshTokenRequest(APIModel):
    refresh_token: str | None = None


class UserOutput(APIModel):
    """Sanitised user: never includes the password hash."""

    id: int = Field(alias="_id")
    name: str
    email: str
    role: str
    avatar: str | None = None
    oauth_provider: str | None = None
    is_online: bool = False
    registered_competitions: list[int] = Field(default_factory=list)
    created_at: UTCDateTime | None = None
    updated_at: UTCDateTime | None = None

    @field_validator("registered_competitions", mode="before")
    @classmethod
    def _competition_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        return [getattr(item, "id", item) for item in value]


class UserProfileOutput(UserOutput):
    """/me variant with registered competitions populated."""

    registered_competitions: list[CompetitionSummary] = Field(default_factory=list)  # type: ignore[assignment]

    @field_validator("registered_competitions", mode="before")
    @classmethod
    def _competition_ids(cls, value: Any) -> Any:
        return value or []


class AuthResponse(APIModel):
    success: bool = True
    message: str
    user: UserOutput
    access_token: str


class CurrentUserResponse(APIModel):
    success: bool = True
    user: UserProfileOutput


class TokenRefreshResponse(APIModel):
    success: bool = True
    message: str
    access_token: str


# =============================================================================
# Category Schemas
# =============================================================================


class CategoryOutput(APIModel):
    id: int = Field(alias="_id")
    name: str
    description: str | None = None
    created_at: UTCDateTime | None = None
    updated_at: UTCDateTime | None = None


class CategoryCreate(APIModel):
    name: CategoryNameStr
    description: str | None = None


class CategoryUpdate(APIModel):
    name: CategoryNameStr | None = None
    description: str | None = None


# =============================================================================
# Competition Schemas
# =============================================================================


class ParticipantRef(APIModel):
    """Participant embedded in a competition: user id only."""

    user_id: int = Field(
        validation_alias=AliasChoices("user_id", "user"),
        serialization_alias="user",
    )
    status: str
    registered_at: UTCDateTime


class CompetitionOutput(APIModel):
    id: int = Field(alias="_id")
    title: str
    description: str
    category: CategoryRef | None = None
    rules: str
    prizes: str | None = None
    start_date: UTCDateTime
    end_date: UTCDateTime
    registration_deadline: UTCDateTime
    max_participants: int | None = None
    registration_count: int = 0
    views: int = 0
    is_active: bool = True
    created_by: UserRef | None = None
    participants: list[ParticipantRef] = Field(default_factory=list)
    created_at: UTCDateTime | None = None
    updated_at: UTCDateTime | None = None


class CompetitionDetailOutput(CompetitionOutput):
    category: CategoryDetailRef | None = None


class CompetitionListResponse(APIModel):
    competitions: list[CompetitionOutput]
    total_pages: int
    current_page: int
    total_competitions: int


class CompetitionCreate(APIModel):
    title: TitleStr
    description: NonBlankStr
    category_id: int = Field(alias="category")
    rules: NonBlankStr
    prizes: str | None = None
    start_date: UTCDateTime
    end_date: UTCDateTime
    registration_deadline: UTCDateTime
    max_participants: int | None = Field(default=None, ge=1)
    is_active: bool = True


class CompetitionUpdate(APIModel):
    title: TitleStr | None = None
    description: NonBlankStr | None = None
    category_id: int | None = Field(default=None, alias="category")
    rules: NonBlankStr | None = None
    prizes: str | None = None
    start_date: UTCDateTime | None = None
    end_date: UTCDateTime | None = None
    registration_deadline: UTCDateTime | None = None
    max_participants: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class RegistrationOutput(APIModel):
    """Participant as listed for admins, with the user populated."""

    user: ParticipantUser | None = None
    status: str
    registered_at: UTCDateTime


class RegistrationListResponse(APIModel):
    competition_title: str
    participants: list[RegistrationOutput]


class RegistrationStatusUpdate(APIModel):
    status: RegistrationStatus


class RegistrationStatusResponse(APIModel):
    message: str
    participant: RegistrationOutput


class MyCompetitionOutput(APIModel):
    id: int = Field(alias="_id")
    title: str
    description: str
    category: CategoryRef | None = None
    start_date: UTCDateTime
    end_date: UTCDateTime
    registration_status: str
    registered_at: UTCDateTime | None = None


class MyCompetitionsResponse(APIModel):
    success: bool = True
    competitions: list[MyCompetitionOutput]


# =============================================================================
# User Schemas
# =============================================================================


class ProfileUpdate(APIModel):
    name: NameStr | None = None
    avatar: str | None = None

    @field_validator("avatar")
    @classmethod
    def _avatar_url(cls, value: str | None) -> str | None:
        return validate_avatar_url(value)


class ProfileResponse(APIModel):
    success: bool = True
    user: UserOutput


class ChangePasswordRequest(APIModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class RoleUpdate(APIModel):
    role: UserRole


class UserResponse(APIModel):
    success: bool = True
    user: UserOutput


class UserListResponse(APIModel):
    success: bool = True
    users: list[UserOutput]


# =============================================================================
# Chat Schemas
# =============================================================================


class MessageOutput(APIModel):
    id: int = Field(alias="_id")
    sender: UserPublic | None = None
    receiver: UserPublic | None = None
    chat_room: str
    content: str
    read: bool = False
    created_at: UTCDateTime


class ChatHistoryResponse(APIModel):
    success: bool = True
    messages: list[MessageOutput]
    total_pages: int
    current_page: int


class RoomSummary(APIModel):
    room_id: str
    last_message: str
    last_message_at: UTCDateTime
    sender: UserPublic | None = None
    unread_count: int


class RoomListResponse(APIModel):
    success: bool = True
    rooms: list[RoomSummary]


# =============================================================================
# Chatbot Schemas
# =============================================================================


class ChatbotMessageRequest(APIModel):
    message: str = Field(default="", max_length=Limits.CHATBOT_MESSAGE_MAX_LENGTH)


class ChatbotResponse(APIModel):
    success: bool = True
    response: str
    source: str  # "ai" | "fallback"


# =============================================================================
# Health
# =============================================================================


class HealthResponse(APIModel):
    status: str
    service: str
    environment: str
