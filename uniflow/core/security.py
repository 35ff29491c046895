"""認証モジュール

APIゲートウェイが付与するユーザーヘッダーから認証済みユーザーを取り出す
開発環境ではX-Dev-User-*ヘッダー、ヘッダーがない場合はBearerトークン（JWT）も受け付ける
"""

import logging
from datetime import timedelta
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from uniflow.core.config import settings
from uniflow.core.constants import AuthHeaders, ErrorMessages, SecurityConstants
from uniflow.dtos.user import UserContext
from uniflow.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

# JWT Bearer認証（ヘッダーがない場合は認証エラーにせずNoneを返す）
security = HTTPBearer(auto_error=False)

# モジュールレベルの依存関数
security_dependency = Depends(security)


def _unauthorized(detail: str = ErrorMessages.UNAUTHORIZED) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_from_gateway_headers(request: Request) -> UserContext | None:
    """APIゲートウェイのヘッダーからユーザーを取得"""
    user_id = request.headers.get(AuthHeaders.USER_ID, "").strip()
    if not user_id:
        return None

    user = UserContext(
        id=user_id,
        email=request.headers.get(AuthHeaders.USER_EMAIL, ""),
        name=request.headers.get(AuthHeaders.USER_NAME, ""),
        picture=request.headers.get(AuthHeaders.USER_PICTURE, ""),
    )
    if not user.email:
        logger.debug(f"{AuthHeaders.USER_EMAIL}ヘッダーがありません: user_id={user.id}")
    return user


def user_from_dev_headers(request: Request) -> UserContext | None:
    """開発用バイパスヘッダーからユーザーを取得（開発環境かつ有効時のみ）"""
    if not (settings.DEV_AUTH_BYPASS and settings.is_development):
        return None

    user_id = request.headers.get(AuthHeaders.DEV_USER_ID, "").strip()
    if not user_id:
        return None

    logger.warning(f"開発用認証バイパスを使用しています: user_id={user_id}")
    return UserContext(
        id=user_id,
        email=request.headers.get(AuthHeaders.DEV_USER_EMAIL, ""),
        name=request.headers.get(AuthHeaders.DEV_USER_NAME, ""),
    )


def create_access_token(user_id: str, email: str = "", name: str = "", expires_delta: timedelta | None = None) -> str:
    """アクセストークンを生成（開発・テスト用）"""
    now = utc_now()
    payload: dict[str, Any] = {
        SecurityConstants.CLAIM_USER_ID: user_id,
        SecurityConstants.CLAIM_EMAIL: email,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=24)),
    }
    if name:
        payload[SecurityConstants.CLAIM_NAME] = name
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def user_from_token(token: str) -> UserContext:
    """Bearerトークンを検証してユーザーを取得

    Raises:
        HTTPException: トークンが無効な場合
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("トークンの有効期限が切れています") from None
    except jwt.InvalidTokenError:
        raise _unauthorized("無効なトークンです") from None

    user_id = payload.get(SecurityConstants.CLAIM_USER_ID)
    if not isinstance(user_id, str) or not user_id:
        raise _unauthorized("トークンにユーザーIDが含まれていません")

    return UserContext(
        id=user_id,
        email=payload.get(SecurityConstants.CLAIM_EMAIL) or "",
        name=payload.get(SecurityConstants.CLAIM_NAME) or "",
    )


async def get_current_user(
    request: Request, credentials: HTTPAuthorizationCredentials | None = security_dependency
) -> UserContext:
    """現在のユーザーを取得

    優先順位: ゲートウェイヘッダー → 開発用ヘッダー → Bearerトークン

    Raises:
        HTTPException: 認証情報がない、または無効な場合
    """
    user = user_from_gateway_headers(request) or user_from_dev_headers(request)
    if user is not None:
        return user

    if credentials is not None:
        return user_from_token(credentials.credentials)

    raise _unauthorized()
