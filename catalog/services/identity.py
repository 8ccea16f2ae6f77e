"""
Identity Service

Turns credentials into a User.

- register_local: new email/password account
- resolve_local: email/password login
- resolve_oauth: idempotent find-or-create for an OAuth profile

Account linking rules for OAuth:
1. If the provider id matches an existing user, return that user
2. If the email matches an existing user, link the provider id to it
3. Otherwise, create a new user

Every path that returns a user stamps last_login_at and commits.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog.errors import DuplicateError, Forbidden, InvalidCredentials
from catalog.models import User
from catalog.services.oauth import OAuthProfile
from catalog.services.security import dummy_verify, hash_password, verify_password

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _find_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(User.email == email)
    return db.execute(stmt).scalar_one_or_none()


def _find_by_provider_id(db: Session, provider: str, provider_user_id: str) -> User | None:
    column = getattr(User, f"{provider}_id")
    stmt = select(User).where(column == provider_user_id)
    return db.execute(stmt).scalar_one_or_none()


def _stamp_login(db: Session, user: User) -> User:
    user.last_login_at = datetime.now(UTC)
    db.commit()
    db.refresh(user)
    return user


def register_local(db: Session, email: str, password: str, display_name: str) -> User:
    """
    Create an email/password account.

    Raises:
        DuplicateError: If the email is already registered
    """
    email = _normalize_email(email)

    if _find_by_email(db, email) is not None:
        raise DuplicateError("Email already registered")

    user = User(
        email=email,
        hashed_password=hash_password(password),
        display_name=display_name,
        last_login_at=datetime.now(UTC),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise DuplicateError("Email already registered") from None

    db.refresh(user)
    logger.info(f"New user registered: {user.email}")
    return user


def resolve_local(db: Session, email: str, password: str) -> User:
    """
    Authenticate with email and password.

    Raises:
        InvalidCredentials: Unknown email, OAuth-only account, or wrong password
        Forbidden: Correct password but the account is inactive
    """
    email = _normalize_email(email)
    user = _find_by_email(db, email)

    if user is None:
        dummy_verify()
        logger.warning(f"Login failed: user not found for {email}")
        raise InvalidCredentials()

    if not user.hashed_password:
        dummy_verify()
        logger.warning(f"Login failed: no password set for {email}")
        raise InvalidCredentials()

    if not verify_password(password, user.hashed_password):
        logger.warning(f"Login failed: incorrect password for {email}")
        raise InvalidCredentials()

    if not user.is_active:
        logger.warning(f"Login failed: inactive account {email}")
        raise Forbidden("Account is inactive")

    logger.info(f"User logged in: {user.email}")
    return _stamp_login(db, user)


def _link_or_create(db: Session, profile: OAuthProfile, email: str) -> User:
    provider_column = f"{profile.provider}_id"
    existing = _find_by_email(db, email)

    if existing is not None:
        current_id = existing.provider_id(profile.provider)
        if current_id and current_id != profile.provider_user_id:
            logger.warning(
                f"{profile.provider} account {profile.provider_user_id} cannot be linked "
                f"to {email}: already linked to another {profile.provider} account"
            )
            raise DuplicateError(
                f"This email is already linked to a different {profile.provider} account"
            )

        logger.info(f"Linking {profile.provider} to existing user: {existing.email}")
        setattr(existing, provider_column, profile.provider_user_id)
        if profile.avatar_url and not existing.avatar_url:
            existing.avatar_url = profile.avatar_url
        return existing

    user = User(
        email=email,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        **{provider_column: profile.provider_user_id},
    )
    db.add(user)
    logger.info(f"Created new {profile.provider} user: {email}")
    return user


def resolve_oauth(db: Session, profile: OAuthProfile) -> User:
    """
    Find or create the user behind an OAuth profile.

    Calling this twice with the same profile returns the same user. Two
    concurrent first logins race on the unique indexes; the loser rolls
    back and picks up the row the winner created.

    Raises:
        DuplicateError: If the email belongs to a user already linked to a
            different account at the same provider, or the race could not
            be resolved
        Forbidden: If the resolved account is inactive
    """
    user = _find_by_provider_id(db, profile.provider, profile.provider_user_id)

    if user is None:
        email = _normalize_email(profile.email)
        user = _link_or_create(db, profile, email)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            user = _find_by_provider_id(db, profile.provider, profile.provider_user_id)
            if user is None:
                raise DuplicateError("Account already exists for this email") from None
            logger.info(f"Concurrent {profile.provider} login resolved to: {user.email}")
    else:
        logger.info(f"Found existing {profile.provider} user: {user.email}")

    if not user.is_active:
        db.rollback()
        logger.warning(f"OAuth login refused for inactive account {user.email}")
        raise Forbidden("Account is inactive")

    return _stamp_login(db, user)
