"""Credential subsystem — sign-up, sign-in, sign-out, session lookup.

Learn: This is the collaborator behind the Verifier capability. The route
guard only ever calls resolve(headers); everything else here is served
under /auth/* and manages its own challenge/response flow.

Session flow:
1. sign_in checks the bcrypt hash, inserts a sessions row, and returns
   a signed token naming that row (set as an HttpOnly cookie too)
2. resolve reads the cookie or an "Authorization: Bearer" header,
   verifies the signature, loads the row + user, rejects expired rows
3. sign_out deletes the row — the token is dead from then on
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional, Protocol

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import cookie_parser

from todogate.auth.identity import Identity
from todogate.auth.password import hash_password, verify_password
from todogate.auth.tokens import TokenError, create_session_token, verify_session_token
from todogate.db.models import Session, User
from todogate.errors import Conflict, Unauthenticated

logger = structlog.get_logger()


class Verifier(Protocol):
    """Anything that can turn request headers into an Identity (or None)."""

    async def resolve(self, headers: Mapping[str, str]) -> Optional[Identity]: ...


@dataclass
class IssuedSession:
    token: str
    session: Session
    user: User


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class CredentialService:
    """Session-issuing and session-verifying credential backend."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        secret: str,
        base_url: str,
        cookie_name: str = "todogate.session_token",
        expire_days: int = 7,
        algorithm: str = "HS256",
        bcrypt_rounds: int = 12,
    ):
        self.sessions = sessions
        self.secret = secret
        self.base_url = base_url
        self.cookie_name = cookie_name
        self.expire_days = expire_days
        self.algorithm = algorithm
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Verifier capability ─────────────────────────────

    async def resolve(self, headers: Mapping[str, str]) -> Optional[Identity]:
        """Resolve the caller's identity. None means "no valid session"."""
        found = await self.get_session(headers)
        if not found:
            return None
        _, user = found
        return Identity(user_id=user.id, role=user.role)

    def extract_token(self, headers: Mapping[str, str]) -> Optional[str]:
        """Cookie first, then "Authorization: Bearer <token>"."""
        lowered = {k.lower(): v for k, v in headers.items()}
        cookie_header = lowered.get("cookie")
        if cookie_header:
            token = cookie_parser(cookie_header).get(self.cookie_name)
            if token:
                return token
        authorization = lowered.get("authorization", "")
        if authorization.startswith("Bearer "):
            return authorization[7:].strip() or None
        return None

    async def get_session(
        self, headers: Mapping[str, str]
    ) -> Optional[tuple[Session, User]]:
        token = self.extract_token(headers)
        if not token:
            return None
        try:
            claims = verify_session_token(
                token, self.secret, self.base_url, algorithm=self.algorithm
            )
        except TokenError:
            return None

        async with self.sessions() as db:
            result = await db.execute(
                select(Session, User)
                .join(User, User.id == Session.user_id)
                .where(Session.id == claims["sid"], Session.user_id == claims["sub"])
            )
            row = result.first()

        if not row:
            return None  # revoked (signed out) or never existed
        session, user = row
        if _as_utc(session.expires_at) <= datetime.now(timezone.utc):
            return None
        return session, user

    # ─── Sign-up / sign-in / sign-out ────────────────────

    async def sign_up(self, email: str, name: str, password: str) -> User:
        email = email.strip().lower()
        async with self.sessions() as db:
            existing = await db.execute(select(User.id).where(User.email == email))
            if existing.first():
                raise Conflict("Email already registered")

            user = User(
                email=email,
                name=name,
                password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            )
            db.add(user)
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race against a concurrent sign-up with the same email
                await db.rollback()
                raise Conflict("Email already registered")
        return user

    async def sign_in(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> IssuedSession:
        email = email.strip().lower()
        async with self.sessions() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalars().first()

            if not user or not user.password_hash:
                logger.info("auth.sign_in_failed", reason="unknown_email")
                raise Unauthenticated("Invalid credentials")
            if not verify_password(password, user.password_hash):
                logger.info("auth.sign_in_failed", reason="bad_password", user_id=user.id)
                raise Unauthenticated("Invalid credentials")

            session = Session(
                user_id=user.id,
                expires_at=datetime.now(timezone.utc) + timedelta(days=self.expire_days),
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.add(session)
            await db.commit()

        token = create_session_token(
            user_id=user.id,
            session_id=session.id,
            expires_at=session.expires_at,
            secret=self.secret,
            issuer=self.base_url,
            algorithm=self.algorithm,
        )
        logger.info("auth.signed_in", user_id=user.id, session_id=session.id)
        return IssuedSession(token=token, session=session, user=user)

    async def sign_out(self, headers: Mapping[str, str]) -> bool:
        """Delete the presented session. False if there was nothing to revoke."""
        found = await self.get_session(headers)
        if not found:
            return False
        session, _ = found
        async with self.sessions.begin() as db:
            await db.execute(delete(Session).where(Session.id == session.id))
        logger.info("auth.signed_out", user_id=session.user_id, session_id=session.id)
        return True

    async def set_role(self, email: str, role: str) -> bool:
        """Change a user's role. Used by the CLI to grant admin."""
        async with self.sessions.begin() as db:
            result = await db.execute(
                update(User).where(User.email == email.strip().lower()).values(role=role)
            )
            return bool(result.rowcount)
