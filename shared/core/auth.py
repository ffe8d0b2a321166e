from typing import Optional
from fastapi import Depends, Header, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from shared.core.config import settings
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import UserAccountType

security = HTTPBearer()


def verify_token(token: str) -> UserToken:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
        user = UserToken(**payload)
    except JWTError:
        return error_response(
            message="Invalid or expired token",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_EXPIRED,
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    except PydanticValidationError:
        return error_response(
            message="Invalid token structure",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    if user.account_type not in (UserAccountType.ADMIN.value, UserAccountType.TENANT.value):
        return error_response(
            message="Unknown account type",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    return user


def validate_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UserToken:
    return verify_token(credentials.credentials)


def allow_admin(current_user: UserToken = Depends(validate_current_token)):
    if current_user.account_type != UserAccountType.ADMIN.value:
        return error_response(
            message="Access forbidden: Admins only",
            status_code=AppStatusCode.AUTHENTICATION_FORBIDDEN,
            http_status=403
        )

    return current_user


def validate_cron_secret(authorization: Optional[str] = Header(None)):
    if not settings.CRON_SECRET:
        return error_response(
            message="CRON_SECRET is not configured",
            status_code=AppStatusCode.AUTHENTICATION_FORBIDDEN,
            http_status=403
        )

    if authorization != f"Bearer {settings.CRON_SECRET}":
        return error_response(
            message="Unauthorized",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    return True
