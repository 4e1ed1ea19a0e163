"""
scores.py
======================

完了したクイズセッションのスコアを scores テーブルに 1 行だけ保存する。

保存内容:
- user_id    : ログインユーザー
- quiz_id    : セッションの最初の問題の id（カテゴリの代表）
- score      : 正解数
- time_taken : セッション開始からの経過秒数（整数に丸める）

未ログイン時の扱いは AppConfig.on_missing_auth で切り替える。
- "skip"  : 保存せずに None を返す（ゲストプレイ扱い）
- "error" : AuthRequiredError を送出する
失敗してもリトライはしない。
"""

from __future__ import annotations

import logging
from typing import Optional

from .backend import Backend
from .config import MISSING_AUTH_POLICIES
from .errors import AuthRequiredError
from .models import AuthSession, ScoreRecord
from .session import QuizSession

logger = logging.getLogger(__name__)

NOT_SAVED_MESSAGE = "You are not signed in, so this score was not saved."


class ScoreRecorder:

    def __init__(self, backend: Backend, on_missing_auth: str = "skip"):
        if on_missing_auth not in MISSING_AUTH_POLICIES:
            raise ValueError(f"unknown on_missing_auth policy: {on_missing_auth!r}")
        self.backend = backend
        self.on_missing_auth = on_missing_auth

    def build_record(self, session: QuizSession, auth: AuthSession) -> ScoreRecord:
        return ScoreRecord(
            user_id=auth.user_id,
            quiz_id=session.first_quiz_id,
            score=session.score,
            time_taken=int(round(session.elapsed_seconds())),
        )

    def record(self, session: QuizSession, auth: Optional[AuthSession]) -> Optional[ScoreRecord]:
        """
        完了済みセッションを保存する。

        同じセッションで 2 回呼ばれても 2 行目は書かない
        （Streamlit の再実行でサマリー画面が何度も描画されるため）。
        """
        if not session.finished:
            raise ValueError("Cannot record an unfinished session")
        if session.saved:
            return None

        if auth is None:
            # 以降の再実行で再度判定しないよう、保存済みとして扱う
            session.saved = True
            if self.on_missing_auth == "error":
                raise AuthRequiredError(NOT_SAVED_MESSAGE)
            logger.info(
                "No signed-in user; skipped saving score %s/%s for %s / %s",
                session.score, session.total, session.subject, session.category,
            )
            return None

        record = self.build_record(session, auth)
        # 失敗しても再実行で書き直さない（リトライしない）
        session.saved = True
        self.backend.insert_score(record)
        logger.info(
            "Saved score %s (%ss) for user %s on %s / %s",
            record.score, record.time_taken, auth.user_id, session.subject, session.category,
        )
        return record
