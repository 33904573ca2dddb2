from typing import Any, Dict
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger

from app.core.exceptions import Forbidden
from app.core.metrics import AUTH_TOKEN_VALIDATION_TOTAL, PERMISSION_CHECK_TOTAL
from env import SECRET_KEY, ALGORITHM, SERVICE_NAME


ROLE_ADMIN = "admin"
ROLE_USER = "user"

bearer_scheme = HTTPBearer()


def authentication_get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Validates a bearer token issued by the auth service.
    Returns {"id": UUID, "name": str | None, "role_name": "user" | "admin"}.
    """
    AUTH_TOKEN_VALIDATION_TOTAL.labels(
        service=SERVICE_NAME,
        result="attempt",
    ).inc()
    token = credentials.credentials
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Access token expired during validation")
        AUTH_TOKEN_VALIDATION_TOTAL.labels(
            service=SERVICE_NAME,
            result="expired",
        ).inc()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        )
    except jwt.InvalidTokenError:
        logger.warning("Invalid access token during validation")
        AUTH_TOKEN_VALIDATION_TOTAL.labels(
            service=SERVICE_NAME,
            result="invalid",
        ).inc()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    try:
        user_id = UUID(str(payload.get("id")))
    except ValueError:
        logger.warning("Access token carries no valid user id")
        AUTH_TOKEN_VALIDATION_TOTAL.labels(
            service=SERVICE_NAME,
            result="bad_subject",
        ).inc()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    role_name = payload.get("role_name") or ROLE_USER
    logger.info(
        "Access token validated for user_id='{user_id}', role='{role}'",
        user_id=str(user_id),
        role=role_name,
    )
    AUTH_TOKEN_VALIDATION_TOTAL.labels(
        service=SERVICE_NAME,
        result="success",
    ).inc()
    return {
        "id": user_id,
        "name": payload.get("sub"),
        "role_name": role_name,
    }


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role_name") == ROLE_ADMIN


def role_required(required_role: str):
    def _checker(user=Depends(authentication_get_current_user)):
        if user.get("role_name") != required_role:
            logger.warning(
                "Role '{required_role}' denied for user_id='{user_id}' with role='{role}'",
                required_role=required_role,
                user_id=str(user.get("id")),
                role=user.get("role_name"),
            )
            PERMISSION_CHECK_TOTAL.labels(
                service=SERVICE_NAME,
                role=required_role,
                result="denied",
            ).inc()
            raise Forbidden(f"Role '{required_role}' required")
        PERMISSION_CHECK_TOTAL.labels(
            service=SERVICE_NAME,
            role=required_role,
            result="granted",
        ).inc()
        return user

    return _checker


admin_required = role_required(ROLE_ADMIN)
