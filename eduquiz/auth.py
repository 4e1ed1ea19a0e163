"""
auth.py
======================

Supabase Auth を使ったサインイン・新規登録・サインアウト。

成功したサインインは AuthSession を返す。呼び出し側はそれを
st.session_state["auth"] に入れ、スコア保存やレーダー表示に明示的に渡す。
失敗はすべて AuthError（画面にそのまま出してよい文言付き）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .backend import Backend
from .errors import AuthError, BackendError
from .models import AuthSession

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
PROFILE_NOT_FOUND = "Profile not found. Please contact admin."
MISSING_FIELDS = "Please fill in all fields."
PASSWORD_MISMATCH = "Passwords do not match."
TERMS_NOT_ACCEPTED = "You must agree to the terms and conditions."
ALREADY_REGISTERED = "You are already registered! Please login instead."


def _attr(obj: Any, name: str, default: Any = None) -> Any:
    """supabase のレスポンスはオブジェクト、フェイクは dict でも来るので両方読む。"""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def sign_in(backend: Backend, email: str, password: str) -> AuthSession:
    email = (email or "").strip().lower()
    if not email or not password:
        raise AuthError(INVALID_CREDENTIALS)

    try:
        response = backend.sign_in(email, password)
    except BackendError as e:
        raise AuthError(INVALID_CREDENTIALS) from e

    user = _attr(response, "user")
    if user is None:
        raise AuthError(INVALID_CREDENTIALS)

    user_id = str(_attr(user, "id", ""))
    profile = backend.fetch_profile(user_id)
    if not profile:
        raise AuthError(PROFILE_NOT_FOUND)

    auth = AuthSession(
        user_id=user_id,
        email=_attr(user, "email") or email,
        firstname=profile.get("firstname") or "",
        lastname=profile.get("lastname") or "",
        role=profile.get("role") or "user",
    )
    logger.info("Signed in %s (role=%s)", auth.email, auth.role)
    return auth


@dataclass
class RegistrationForm:
    firstname: str
    lastname: str
    email: str
    password: str
    confirm_password: str
    agreed: bool = False

    def cleaned(self) -> "RegistrationForm":
        return RegistrationForm(
            firstname=(self.firstname or "").strip(),
            lastname=(self.lastname or "").strip(),
            email=(self.email or "").strip().lower(),
            password=self.password or "",
            confirm_password=self.confirm_password or "",
            agreed=bool(self.agreed),
        )

    def validate(self) -> None:
        if not (self.firstname and self.lastname and self.email
                and self.password and self.confirm_password):
            raise AuthError(MISSING_FIELDS)
        if self.password != self.confirm_password:
            raise AuthError(PASSWORD_MISMATCH)
        if not self.agreed:
            raise AuthError(TERMS_NOT_ACCEPTED)


def register(backend: Backend, form: RegistrationForm) -> bool:
    """
    新規登録。profiles に role="user" の行を作る。

    Returns:
        True  : プロフィールまで作成できた
        False : サインアップは受け付けられたがユーザーがまだ無い（メール確認待ち）
    """
    form = form.cleaned()
    form.validate()

    if backend.find_profile_by_email(form.email):
        raise AuthError(ALREADY_REGISTERED)

    try:
        response = backend.sign_up(form.email, form.password)
    except BackendError as e:
        raise AuthError(e.message) from e

    user = _attr(response, "user")
    if user is None:
        logger.info("Sign-up pending confirmation for %s", form.email)
        return False

    try:
        backend.insert_profile({
            "id": str(_attr(user, "id", "")),
            "firstname": form.firstname,
            "lastname": form.lastname,
            "email": form.email,
            "role": "user",
        })
    except BackendError as e:
        raise AuthError(e.message) from e

    logger.info("Registered new user %s", form.email)
    return True


def sign_out(backend: Backend, auth: Optional[AuthSession]) -> None:
    """Supabase 側のセッションを破棄する。AuthSession の破棄は呼び出し側で。"""
    backend.sign_out()
    if auth is not None:
        logger.info("Signed out %s", auth.email)
