"""
Credential verification and session tokens.

Passwords are stored as bcrypt hashes and compared with ``bcrypt.checkpw``.
Session tokens are HS256 JWTs (PyJWT) carrying the account id, username and
role, valid for ``TOKEN_TTL_HOURS`` from issue. There is no revocation list:
a token stays valid until it expires.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from functools import cached_property
from typing import Callable, Iterable, Optional, Protocol

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writer_studio.config.settings import Settings
from writer_studio.core.errors import BadRequestError, ServerError, UnauthorizedError
from writer_studio.models.account_orm import LoginORM, WriterORM
from writer_studio.models.dtos import LoginResponse, TokenClaims, UserProfile, UserRecord

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
TOKEN_REJECTED = "Invalid or expired token"


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt hash of ``password``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class UserStore(Protocol):
    """Read access to accounts."""

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    async def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        ...


class SqlUserStore:
    """Accounts backed by the ``login`` table, joined to ``writer`` for the writer id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _base_query(self):
        return (
            select(LoginORM, WriterORM.id.label("writer_id"), WriterORM.name.label("writer_name"))
            .outerjoin(WriterORM, WriterORM.login_id == LoginORM.id)
        )

    @staticmethod
    def _to_record(row) -> Optional[UserRecord]:
        if row is None:
            return None
        login, writer_id, writer_name = row
        return UserRecord(
            id=login.id,
            username=login.username,
            password_hash=login.password_hash,
            role=login.role,
            writer_id=writer_id,
            name=writer_name,
        )

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(self._base_query().where(LoginORM.username == username))
            return self._to_record(result.first())

    async def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(self._base_query().where(LoginORM.id == user_id))
            return self._to_record(result.first())

    async def create_user(
        self,
        username: str,
        password_hash: str,
        role: str = "writer",
        writer_name: Optional[str] = None,
        writer_email: Optional[str] = None,
    ) -> UserRecord:
        """Insert a login row and, for writers, the matching writer row."""
        async with self._session_factory() as session:
            async with session.begin():
                login = LoginORM(username=username, password_hash=password_hash, role=role)
                session.add(login)
                await session.flush()
                writer_id = None
                if role == "writer":
                    writer = WriterORM(login_id=login.id, name=writer_name or username, email=writer_email)
                    session.add(writer)
                    await session.flush()
                    writer_id = writer.id
        logger.info(f"Created account '{username}' (role={role}, writer_id={writer_id})")
        return UserRecord(
            id=login.id,
            username=username,
            password_hash=password_hash,
            role=role,
            writer_id=writer_id,
            name=writer_name,
        )


class InMemoryUserStore:
    """Dictionary-backed accounts, for tests and local demos."""

    def __init__(self, users: Iterable[UserRecord] = ()):
        self._users = {user.id: user for user in users}

    def add(
        self,
        username: str,
        password: str,
        role: str = "writer",
        writer_id: Optional[int] = None,
        rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ) -> UserRecord:
        user = UserRecord(
            id=max(self._users, default=0) + 1,
            username=username,
            password_hash=hash_password(password, rounds=rounds),
            role=role,
            writer_id=writer_id,
        )
        self._users[user.id] = user
        return user

    def remove(self, user_id: int) -> None:
        self._users.pop(user_id, None)

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self._users.values() if u.username == username), None)

    async def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        return self._users.get(user_id)


class CredentialVerifier:
    """
    Authenticates accounts and issues/verifies session tokens.

    Args:
        user_store: Where accounts are looked up.
        secret_key: HMAC key used to sign tokens.
        algorithm: JWT signing algorithm.
        token_ttl: How long an issued token stays valid.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        user_store: UserStore,
        secret_key: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(hours=24),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.user_store = user_store
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.token_ttl = token_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, user_store: UserStore, settings: Settings) -> "CredentialVerifier":
        return cls(
            user_store=user_store,
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            token_ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
        )

    @cached_property
    def _dummy_hash(self) -> str:
        # Compared against when the username is unknown so both failure paths cost one bcrypt check.
        return hash_password(secrets.token_urlsafe(16))

    async def login(self, username: Optional[str], password: Optional[str]) -> LoginResponse:
        """
        Authenticate a username/password pair and issue a session token.

        Raises:
            BadRequestError: If either field is missing or empty.
            UnauthorizedError: If the username is unknown or the password does not match.
            ServerError: If the account store fails.
        """
        if not username or not password:
            raise BadRequestError("Username and password required")

        try:
            user = await self.user_store.get_by_username(username)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Account lookup failed for login: {e}", exc_info=True)
            raise ServerError() from e

        if user is None:
            verify_password(password, self._dummy_hash)
            logger.info("Login rejected: unknown username")
            raise UnauthorizedError()
        if not verify_password(password, user.password_hash):
            logger.info(f"Login rejected: bad password for user id {user.id}")
            raise UnauthorizedError()

        token = self.issue_token(user)
        logger.info(f"User {user.id} logged in")
        return LoginResponse(token=token, username=user.username, role=user.role)

    def issue_token(self, user: UserRecord, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or self._clock()
        expires_at = issued_at + self.token_ttl
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "role": user.role,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenClaims:
        """
        Validate signature and expiry and return the token claims.

        Raises:
            UnauthorizedError: If the token is malformed, tampered with or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
            return TokenClaims(**payload)
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired session token")
            raise UnauthorizedError(TOKEN_REJECTED)
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            logger.info(f"Rejected invalid session token: {e}")
            raise UnauthorizedError(TOKEN_REJECTED)

    async def verify(self, token: Optional[str]) -> UserProfile:
        """
        Resolve a bearer token to the current account profile.

        The account is re-read on every call, so a deleted account invalidates
        its outstanding tokens.

        Raises:
            UnauthorizedError: If the token is missing or invalid, or the account no longer exists.
            ServerError: If the account store fails.
        """
        if not token:
            raise UnauthorizedError(TOKEN_REJECTED)
        claims = self.decode_token(token)
        try:
            user_id = claims.user_id
        except ValueError:
            raise UnauthorizedError(TOKEN_REJECTED)

        try:
            user = await self.user_store.get_by_id(user_id)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Account lookup failed for token verification: {e}", exc_info=True)
            raise ServerError() from e

        if user is None:
            logger.info(f"Token subject {user_id} no longer exists")
            raise UnauthorizedError(TOKEN_REJECTED)
        return UserProfile(id=user.id, username=user.username, role=user.role, writer_id=user.writer_id, name=user.name)
