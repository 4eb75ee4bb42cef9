"""
Authentication and authorization handler
Password hashing, bearer tokens and the request-level actor dependencies
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Request, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.auth.policy import Action, Decision, Resource, coarse_gate
from app.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to perform this action"


@dataclass(frozen=True)
class Actor:
    """The authenticated identity performing a request"""
    id: int
    username: str
    email: str
    role: str


class AuthHandler:
    """Handles password hashing and token issuing for one set of settings"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.bcrypt_rounds
        )

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT carrying the account's identity and role"""
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.settings.access_token_expire_minutes)

        to_encode = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "role": user.role,
            "exp": datetime.utcnow() + expires_delta,
        }
        return jwt.encode(to_encode, self.settings.secret_key, algorithm=self.settings.algorithm)

    def verify_token(self, token: str) -> dict:
        """Decode a JWT; any failure is an authentication failure"""
        try:
            payload = jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.algorithm])
        except JWTError:
            raise credentials_exception()

        if payload.get("sub") is None:
            raise credentials_exception()
        return payload


def get_auth_handler(request: Request) -> AuthHandler:
    """Dependency returning the handler built from the application's settings"""
    return request.app.state.auth_handler


def credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_handler: AuthHandler = Depends(get_auth_handler),
    db: Session = Depends(get_db)
) -> User:
    """Dependency resolving the bearer token to a stored account"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = auth_handler.verify_token(credentials.credentials)

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise credentials_exception()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        # deleted accounts stop authenticating immediately
        raise credentials_exception()
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, username=user.username, email=user.email, role=user.role)


class PolicyGate:
    """Reject roles that hold no grant at all for a resource action"""

    def __init__(self, resource: Resource, action: Action):
        self.resource = resource
        self.action = action

    def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if not coarse_gate(actor.role, self.resource, self.action):
            logger.warning(
                f"Denied {self.action.value} on {self.resource.value} for user {actor.id} ({actor.role})"
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_AUTHORIZED)
        return actor


def requires(resource: Resource, action: Action) -> PolicyGate:
    return PolicyGate(resource, action)


def enforce(decision: Decision, actor: Actor) -> Decision:
    """Raise a generic 403 for a denied decision; the reason is only logged"""
    if not decision.permitted:
        logger.warning(f"Authorization denied for user {actor.id}: {decision.reason}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_AUTHORIZED)
    return decision
