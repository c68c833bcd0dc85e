import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, ConflictError, StoreError
from app.core.security import (
    create_access_token, create_refresh_token, decode_token, hash_password, verify_password,
)
from app.models.profile import Profile
from app.models.user import User


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    role: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    expires_at: int


class IdentityProvider(ABC):
    @abstractmethod
    def create_account(self, email: str, password: str, metadata: dict[str, Any]) -> Account:
        """Raises ConflictError when the email is already registered."""
        raise NotImplementedError

    @abstractmethod
    def sign_in(self, email: str, password: str) -> tuple[Account, SessionTokens]:
        raise NotImplementedError

    @abstractmethod
    def get_account(self, access_token: str) -> Account:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """Accounts in the `users` table, with the matching `profiles` row created alongside
    (the job a signup trigger does on a hosted auth service)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_account(self, email: str, password: str, metadata: dict[str, Any]) -> Account:
        email = email.strip().lower()
        role = metadata.get("role") or "passenger"
        if self.db.query(User.id).filter(User.email == email).first():
            raise ConflictError(f"User {email} already registered")

        user = User(
            id=str(uuid.uuid4()),
            email=email,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
        self.db.add(user)
        self.db.add(Profile(
            id=user.id,
            first_name=metadata.get("first_name", "") or "",
            last_name=metadata.get("last_name", "") or "",
            role=role,
            phone_number=metadata.get("phone_number"),
        ))
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"User {email} already registered") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("account creation failed") from e
        return Account(id=user.id, email=user.email, role=user.role, metadata=dict(metadata))

    def sign_in(self, email: str, password: str) -> tuple[Account, SessionTokens]:
        user = self.db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()
        if not user or not user.is_active or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        access, expires_at = create_access_token(user.id)
        tokens = SessionTokens(
            access_token=access,
            refresh_token=create_refresh_token(user.id),
            expires_at=expires_at,
        )
        return Account(id=user.id, email=user.email, role=user.role), tokens

    def get_account(self, access_token: str) -> Account:
        try:
            payload = decode_token(access_token)
        except JWTError as e:
            raise AuthenticationError("Invalid or expired token") from e
        if payload.get("type") != "access":
            raise AuthenticationError("Invalid or expired token")
        user = self.db.get(User, payload.get("sub"))
        if not user or not user.is_active:
            raise AuthenticationError("Invalid or expired token")
        return Account(id=user.id, email=user.email, role=user.role)
