# herbal_retail/core/security.py

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from herbal_retail.config import security_config

SECRET_KEY = security_config.get("secret_key", "secret")
ALGORITHM = security_config.get("algorithm", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(security_config.get("access_token_expire_minutes", 720))

MANAGER_ROLES = ("admin", "manager")

# Tokens are issued by the shared auth service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="herbal_retail_api/token")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> dict:
    """
    获取当前用户信息
    `sub` is the auth user id (team_members.user_id); `role` the app role.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_code: str = payload.get("sub")
        if user_code is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    return {"user_code": user_code, "role": payload.get("role")}


def require_roles(*roles: str):
    """Dependency factory: the current user must hold one of roles."""

    async def _require(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of roles: {', '.join(roles)}",
            )
        return current_user

    return _require


require_manager = require_roles(*MANAGER_ROLES)
