"""
backend.py
======================

Supabase への呼び出しをすべてここに集約するゲートウェイ。

方針:
- 読み取り系は失敗したらログに残して空リスト / 0 / None を返す
  （画面は空表示にフォールバックする）
- 書き込み系は失敗したらログに残したうえで BackendError を送出する
  （管理画面で「保存できなかった」と表示するため）
- リトライはしない。キャンセルもしない。

結合クエリのセレクト句は下の *_SELECT 定数で固定しており、
結果の解釈は models.*.from_row() に任せる。
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from .config import AppConfig
from .errors import BackendError
from .models import LeaderboardRow, QuizItem, ScoreRecord, ScoreWithQuiz

logger = logging.getLogger(__name__)

QUIZZES = "quizzes"
SCORES = "scores"
PROFILES = "profiles"
LOGIN_LOGS = "login_logs"

LEADERBOARD_SELECT = "score,time_taken,profiles!inner(lastname),quizzes!inner(category,subject)"
SCORE_QUIZ_SELECT = "id,score,time_taken,created_at,quiz_id,quizzes!quiz_id(id,category,subject)"
SCORE_SUBJECT_SELECT = "id,score,time_taken,created_at,quiz_id,quizzes!inner(id,category,subject)"
SCORE_EXPORT_SELECT = (
    "id,score,time_taken,created_at,quiz_id,"
    "quizzes!quiz_id(subject,category),"
    "profiles!user_id(firstname,lastname,email)"
)
ACTIVITY_SELECT = "created_at,quizzes(subject)"


def create_backend(config: AppConfig) -> "Backend":
    """設定から Supabase クライアントを作り Backend で包む。"""
    if not config.has_backend:
        raise BackendError("connect", "SUPABASE_URL / SUPABASE_KEY が設定されていません。")
    return Backend(create_client(config.supabase_url, config.supabase_key))


class Backend:
    """
    Supabase クライアントの薄いラッパー。

    client には supabase.Client（テストでは同じ形のフェイク）を渡す。
    """

    def __init__(self, client: Client):
        self.client = client

    # ------------------------------------------------------------------
    # 共通
    # ------------------------------------------------------------------
    def _execute(self, operation: str, query) -> Any:
        try:
            return query.execute()
        except Exception as e:
            logger.error("Supabase %s failed: %s", operation, e)
            raise BackendError(operation, str(e)) from e

    def _read(self, operation: str, query) -> List[Dict[str, Any]]:
        try:
            response = self._execute(operation, query)
        except BackendError:
            return []
        return list(response.data or [])

    # ------------------------------------------------------------------
    # quizzes
    # ------------------------------------------------------------------
    def fetch_quizzes(self, subject: str) -> List[QuizItem]:
        """生徒用: 教科の全問題を level 昇順で取得。"""
        rows = self._read(
            "fetch quizzes",
            self.client.table(QUIZZES).select("*").eq("subject", subject).order("level"),
        )
        return [QuizItem.from_dict(r) for r in rows]

    def fetch_quizzes_for_admin(self, subject: str) -> List[QuizItem]:
        """管理画面用: category → level の順に並べて取得。"""
        rows = self._read(
            "fetch quizzes (admin)",
            self.client.table(QUIZZES)
            .select("*")
            .eq("subject", subject)
            .order("category")
            .order("level"),
        )
        return [QuizItem.from_dict(r) for r in rows]

    def insert_quiz(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = self._execute("insert quiz", self.client.table(QUIZZES).insert([payload]))
        logger.info("Quiz saved: %s / %s level %s", payload.get("subject"), payload.get("category"), payload.get("level"))
        return list(response.data or [])

    def update_quiz(self, quiz_id: str, changes: Dict[str, Any]) -> None:
        self._execute("update quiz", self.client.table(QUIZZES).update(changes).eq("id", quiz_id))

    def delete_quiz(self, quiz_id: str) -> None:
        self._execute("delete quiz", self.client.table(QUIZZES).delete().eq("id", quiz_id))

    # ------------------------------------------------------------------
    # scores
    # ------------------------------------------------------------------
    def insert_score(self, record: ScoreRecord) -> None:
        self._execute("insert score", self.client.table(SCORES).insert([record.to_dict()]))

    def fetch_leaderboard(self, subject: str, category: str) -> List[LeaderboardRow]:
        rows = self._read(
            f"fetch leaderboard ({subject} / {category})",
            self.client.table(SCORES)
            .select(LEADERBOARD_SELECT)
            .eq("quizzes.subject", subject)
            .eq("quizzes.category", category)
            .order("score", desc=True)
            .order("time_taken"),
        )
        return [LeaderboardRow.from_row(r) for r in rows]

    def fetch_user_scores(self, user_id: str, limit: int = 50) -> List[ScoreWithQuiz]:
        """ログインユーザーの直近スコア（新しい順）。"""
        rows = self._read(
            "fetch user scores",
            self.client.table(SCORES)
            .select(SCORE_QUIZ_SELECT)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit),
        )
        return [ScoreWithQuiz.from_row(r) for r in rows]

    def fetch_subject_scores(self, subject: str) -> List[ScoreWithQuiz]:
        """全ユーザーの、指定教科のスコア（新しい順）。"""
        rows = self._read(
            f"fetch scores ({subject})",
            self.client.table(SCORES)
            .select(SCORE_SUBJECT_SELECT)
            .eq("quizzes.subject", subject)
            .order("created_at", desc=True),
        )
        return [ScoreWithQuiz.from_row(r) for r in rows]

    def fetch_all_scores(self) -> List[ScoreWithQuiz]:
        """エクスポート用。プロフィール情報付き。"""
        rows = self._read(
            "fetch all scores",
            self.client.table(SCORES).select(SCORE_EXPORT_SELECT).order("created_at", desc=True),
        )
        return [ScoreWithQuiz.from_row(r) for r in rows]

    def fetch_scores_between(self, start_iso: str, end_iso: str) -> List[ScoreWithQuiz]:
        rows = self._read(
            "fetch activity",
            self.client.table(SCORES)
            .select(ACTIVITY_SELECT)
            .gte("created_at", start_iso)
            .lte("created_at", end_iso),
        )
        return [ScoreWithQuiz.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # profiles / login_logs
    # ------------------------------------------------------------------
    def count_profiles(self, role: str) -> int:
        try:
            response = self._execute(
                f"count profiles ({role})",
                self.client.table(PROFILES).select("*", count="exact").eq("role", role),
            )
        except BackendError:
            return 0
        return int(response.count or 0)

    def fetch_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._read(
            "fetch profile",
            self.client.table(PROFILES)
            .select("id,firstname,lastname,role")
            .eq("id", user_id)
            .limit(1),
        )
        return rows[0] if rows else None

    def find_profile_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        rows = self._read(
            "find profile by email",
            self.client.table(PROFILES).select("email").eq("email", email).limit(1),
        )
        return rows[0] if rows else None

    def insert_profile(self, profile: Dict[str, Any]) -> None:
        self._execute("insert profile", self.client.table(PROFILES).insert([profile]))

    def fetch_login_logs(self) -> List[Dict[str, Any]]:
        return self._read(
            "fetch login logs",
            self.client.table(LOGIN_LOGS).select("*").order("login_at", desc=True),
        )

    # ------------------------------------------------------------------
    # auth
    # ------------------------------------------------------------------
    def sign_in(self, email: str, password: str):
        """成功すれば AuthResponse（user / session を持つ）を返す。"""
        try:
            return self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning("Sign-in failed for %s: %s", email, e)
            raise BackendError("sign in", str(e)) from e

    def sign_up(self, email: str, password: str):
        try:
            return self.client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            logger.warning("Sign-up failed for %s: %s", email, e)
            raise BackendError("sign up", str(e)) from e

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as e:
            logger.error("Sign-out failed: %s", e)
