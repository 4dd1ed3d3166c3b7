from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from ...config import settings
from ...domain.entities import Viewer

bearer = HTTPBearer()
optional_bearer = HTTPBearer(auto_error=False)

def _decode(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def get_claims(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    return _decode(creds.credentials)

def require_admin(claims: dict = Depends(get_claims)) -> dict:
    # роль приходит в токене из auth-сервиса
    role = claims.get("role", "student")
    if role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
    return claims

def get_viewer(creds: HTTPAuthorizationCredentials | None = Depends(optional_bearer)) -> Viewer:
    """Контент курса можно смотреть и без токена: тогда открыты только бесплатные превью."""
    if creds is None:
        return Viewer()
    claims = _decode(creds.credentials)
    return Viewer(user_id=claims.get("sub"), is_admin=claims.get("role") == "admin")
