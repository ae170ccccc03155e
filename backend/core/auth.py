"""
Firebase Authentication Module for the Course Registration Backend

Provides token verification and user authentication via Firebase Auth.
Roles come from Firebase custom claims set by the portal's admin tools.
"""

import os
from typing import Optional
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth

from .config import initialize_firebase


# Security scheme for Bearer token
security = HTTPBearer()

# Optional email domain restriction (empty allows any domain)
ALLOWED_EMAIL_DOMAIN = os.getenv("ALLOWED_EMAIL_DOMAIN", "")


class UserRole(str, Enum):
    """User roles in the portal."""
    STUDENT = "student"
    LECTURER = "lecturer"
    ADMIN = "admin"
    FINANCE = "finance"


@dataclass
class AuthenticatedUser:
    """Represents an authenticated user from Firebase."""
    uid: str
    email: Optional[str]
    email_verified: bool
    role: UserRole
    display_name: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.LECTURER, UserRole.ADMIN, UserRole.FINANCE)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        token: The Firebase ID token to verify

    Returns:
        Decoded token claims

    Raises:
        HTTPException: If token is invalid or expired
    """
    initialize_firebase()
    try:
        decoded_token = auth.verify_id_token(token)
        return decoded_token
    except auth.ExpiredIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"}
        )
    except auth.RevokedIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"}
        )
    except auth.InvalidIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"}
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def validate_email_domain(email: Optional[str], domain: str = ALLOWED_EMAIL_DOMAIN) -> bool:
    """
    Validate that the email belongs to the allowed domain.

    With no domain configured, any well-formed address is accepted.
    """
    if not email:
        return False

    email_lower = email.lower()

    # Must have @ symbol and characters before it
    if "@" not in email_lower or email_lower.startswith("@"):
        return False

    if not domain:
        return True

    return email_lower.endswith(f"@{domain.lower()}")


def get_user_role(decoded_token: dict) -> UserRole:
    """
    Extract user role from token claims.

    The portal sets a "role" custom claim; boolean admin/lecturer/finance
    claims are honoured too. Default role is STUDENT.
    """
    claims = decoded_token.get("claims", {})

    for source in (claims, decoded_token):
        role = source.get("role")
        if role:
            try:
                return UserRole(str(role).lower())
            except ValueError:
                pass

        if source.get("admin"):
            return UserRole.ADMIN
        elif source.get("lecturer"):
            return UserRole.LECTURER
        elif source.get("finance"):
            return UserRole.FINANCE

    return UserRole.STUDENT


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthenticatedUser:
    """
    FastAPI dependency to get the current authenticated user.

    Usage:
        @app.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"uid": user.uid}
    """
    token = credentials.credentials
    decoded_token = verify_firebase_token(token)

    email = decoded_token.get("email")

    if not validate_email_domain(email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access restricted to portal accounts"
        )

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=email,
        email_verified=decoded_token.get("email_verified", False),
        role=get_user_role(decoded_token),
        display_name=decoded_token.get("name")
    )


async def get_current_admin(
    user: AuthenticatedUser = Depends(get_current_user)
) -> AuthenticatedUser:
    """
    Dependency that ensures the user is an admin.

    Raises:
        HTTPException: If user is not an admin
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


def verify_user_access(user: AuthenticatedUser, resource_user_id: str, write: bool = False) -> bool:
    """
    Verify that a user can access a student's registration data.

    Rules:
    - Users can always access their own registrations
    - Admins can read and change any student's registrations
    - Lecturers and finance staff can read but not change them
    """
    if user.uid == resource_user_id:
        return True

    if user.is_admin:
        return True

    if user.is_staff and not write:
        return True

    return False
