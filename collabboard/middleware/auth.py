"""JWT authentication for FastAPI routes and WebSocket endpoints."""
from fastapi import HTTPException, status, Request, WebSocket
from jose import jwt, JWTError
from pydantic import BaseModel
from typing import Optional

from collabboard.db import config

ALGORITHM = "HS256"


class CurrentUser(BaseModel):
    """Identity extracted from a bearer token of the identity provider."""
    user_id: str
    email: Optional[str] = None


def decode_identity(token: str, secret: Optional[str] = None) -> CurrentUser:
    """
    Verify a bearer token and return the identity it carries.

    Raises:
        HTTPException: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, secret or config.AUTH_SECRET, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(user_id=user_id, email=payload.get("email"))


async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate JWT token from Authorization header and extract user information.

    Args:
        request: FastAPI request object to extract Authorization header

    Returns:
        CurrentUser with user_id and email from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return decode_identity(auth_header[7:])


def websocket_identity(websocket: WebSocket) -> Optional[CurrentUser]:
    """Identity of a WebSocket client from its ``token`` query parameter, or None."""
    token = websocket.query_params.get("token")
    if not token:
        return None
    try:
        return decode_identity(token)
    except HTTPException:
        return None
