"""認証関連フィクスチャ"""

import pytest

from uniflow.core.constants import AuthHeaders
from uniflow.core.security import create_access_token
from tests.fixtures.entities import OTHER_USER_ID, TEST_USER_ID


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """APIゲートウェイが付与するユーザーヘッダー"""
    return {
        AuthHeaders.USER_ID: TEST_USER_ID,
        AuthHeaders.USER_EMAIL: "student@example.com",
        AuthHeaders.USER_NAME: "Test Student",
    }


@pytest.fixture
def other_auth_headers() -> dict[str, str]:
    """別ユーザーのヘッダー"""
    return {AuthHeaders.USER_ID: OTHER_USER_ID, AuthHeaders.USER_EMAIL: "other@example.com"}


@pytest.fixture
def bearer_headers() -> dict[str, str]:
    """Bearerトークンによる認証ヘッダー"""
    token = create_access_token(TEST_USER_ID, email="student@example.com")
    return {"Authorization": f"Bearer {token}"}
