"""
User Service - accounts, credentials and admin user management.

Password hashing is always an explicit call here, before the entity is
persisted.

Usage:
    from rest_api.services.domain import UserService

    service = UserService(db)
    user = service.register(body)
    user = service.authenticate(email, password)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Competition, User
from rest_api.services.base_service import BaseService
from rest_api.services.domain.competition_service import CompetitionService
from shared.config.constants import UserRole
from shared.config.logging import get_logger, mask_email
from shared.security.password import hash_password, verify_password
from shared.utils.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from shared.utils.schemas import ChangePasswordRequest, ProfileUpdate, RegisterRequest
from shared.utils.validators import escape_like_pattern, password_policy_violations, sanitize_search_term

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class OAuthProfile:
    """Identity returned by an OAuth provider."""

    provider: str
    provider_id: str
    email: str
    name: str
    picture: str | None = None


class UserService(BaseService[User]):
    """
    Business rules:
    - Emails are unique and stored lower-case
    - OAuth-only accounts (no password) cannot log in with a password or change it
    - Admins cannot delete their own account
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=User, entity_name="User")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def find_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email.lower()))

    def get_profile(self, user_id: int) -> User:
        """User with registered competitions (and their categories) loaded."""
        user = self.db.scalar(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.registered_competitions).selectinload(Competition.category))
        )
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def list_users(self, role: UserRole | None = None, search: str | None = None) -> list[User]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role.value)

        term = sanitize_search_term(search)
        if term:
            pattern = f"%{escape_like_pattern(term)}%"
            stmt = stmt.where(
                or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\"))
            )

        return list(self.db.scalars(stmt.order_by(User.created_at.desc(), User.id.desc())))

    # =========================================================================
    # Credentials
    # =========================================================================

    def register(self, body: RegisterRequest) -> User:
        """
        Create a local account.

        Raises:
            ConflictError: email already in use
        """
        email = body.email.lower()
        if self.find_by_email(email) is not None:
            raise ConflictError("An account with this email already exists", email=mask_email(email))

        user = User(
            name=body.name,
            email=email,
            password=hash_password(body.password),
            role=UserRole.USER.value,
        )
        self.db.add(user)
        try:
            self.commit(user)
        except IntegrityError:
            raise ConflictError("An account with this email already exists", email=mask_email(email))

        logger.info("User registered", user_id=user.id, email=mask_email(email))
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check email/password credentials.

        OAuth-only accounts are rejected before any hash comparison.

        Raises:
            AuthenticationError: unknown email, OAuth-only account, wrong password
        """
        user = self.find_by_email(email)
        if user is None:
            raise AuthenticationError(INVALID_CREDENTIALS, email=mask_email(email), reason="unknown_email")

        if user.is_oauth_only:
            provider = user.oauth_provider or "oauth"
            raise AuthenticationError(
                f"This account uses {provider} login. Please sign in with {provider}.",
                user_id=user.id,
                reason="oauth_only",
            )

        if not verify_password(password, user.password):
            raise AuthenticationError(INVALID_CREDENTIALS, user_id=user.id, reason="bad_password")

        return user

    def resolve_oauth_user(self, profile: OAuthProfile) -> User:
        """
        Find or create the account for an OAuth identity.

        Resolution order: (provider, provider id) match, then an account with
        the same email (linked in place), then a new passwordless account.
        """
        user = self.db.scalar(
            select(User).where(
                User.oauth_provider == profile.provider,
                User.oauth_id == profile.provider_id,
            )
        )
        if user is not None:
            return user

        email = profile.email.lower()
        user = self.find_by_email(email)
        if user is not None:
            user.oauth_provider = profile.provider
            user.oauth_id = profile.provider_id
            if not user.avatar and profile.picture:
                user.avatar = profile.picture
            self.commit(user)
            logger.info("OAuth identity linked", user_id=user.id, provider=profile.provider)
            return user

        user = User(
            name=profile.name or email.split("@", 1)[0],
            email=email,
            password=None,
            oauth_provider=profile.provider,
            oauth_id=profile.provider_id,
            avatar=profile.picture,
            role=UserRole.USER.value,
        )
        self.db.add(user)
        self.commit(user)
        logger.info("OAuth user created", user_id=user.id, provider=profile.provider, email=mask_email(email))
        return user

    def change_password(self, user: User, body: ChangePasswordRequest) -> None:
        """
        Raises:
            ValidationError: OAuth-only account, or new password breaks the policy
            AuthenticationError: current password is wrong
        """
        if user.is_oauth_only:
            raise ValidationError("OAuth users cannot change password", user_id=user.id)

        if not verify_password(body.current_password, user.password):
            raise AuthenticationError("Current password is incorrect", user_id=user.id)

        problems = password_policy_violations(body.new_password)
        if problems:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "newPassword", "message": problem} for problem in problems],
            )

        user.password = hash_password(body.new_password)
        self.commit()
        logger.info("Password changed", user_id=user.id)

    # =========================================================================
    # Profile / admin commands
    # =========================================================================

    def update_profile(self, user: User, body: ProfileUpdate) -> User:
        """Only non-empty provided fields are applied."""
        if body.name:
            user.name = body.name
        if body.avatar:
            user.avatar = body.avatar
        self.commit(user)
        return user

    def update_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_or_404(user_id)
        previous = user.role
        user.role = role.value
        self.commit(user)
        logger.info("User role changed", user_id=user.id, from_role=previous, to_role=user.role)
        return user

    def delete_user(self, user_id: int, acting_user: User) -> None:
        if user_id == acting_user.id:
            raise ValidationError("You cannot delete your own account", user_id=user_id)

        user = self.get_or_404(user_id)
        competition_ids = [participant.competition_id for participant in user.participations]

        self.db.delete(user)
        self.db.flush()
        # Participant rows went with the user
        CompetitionService(self.db).sync_registration_counts(competition_ids)

        self.commit()
        logger.info("User deleted", user_id=user_id, deleted_by=acting_user.id, competitions=len(competition_ids))

    def set_online(self, user_id: int, online: bool) -> None:
        user = self.get(user_id)
        if user is None:
            return
        user.is_online = online
        self.commit()
