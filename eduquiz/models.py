"""
models.py
======================

Supabase のテーブル行とアプリ内部で使うデータクラス。

テーブル:
- quizzes  : QuizItem
- scores   : ScoreRecord
- profiles : Profile（AuthSession の一部）

結合クエリの結果（scores + quizzes + profiles）について:
    scores から quizzes / profiles への埋め込みは多対一なので、
    PostgREST は必ず「単一オブジェクト」（または null）を返す。
    この前提で from_row() だけが解釈し、呼び出し側で
    配列かどうかを判定する分岐は持たない。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def normalize_answer(text: Optional[str]) -> str:
    """前後の空白を除き、大文字小文字を無視して比較できる形にする。"""
    return (text or "").strip().casefold()


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ----------------------------------------------------------------------
# quizzes
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class QuizItem:
    """quizzes テーブルの 1 行。生徒側からは読み取り専用。"""

    id: str
    subject: str
    category: str
    level: int
    question: str
    answer: str
    solution: str = ""
    accepted_answers: List[str] = field(default_factory=list)
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizItem":
        return cls(
            id=str(data.get("id", "")),
            subject=data.get("subject") or "",
            category=data.get("category") or "",
            level=int(data.get("level") or 0),
            question=data.get("question") or "",
            answer=data.get("answer") or "",
            solution=data.get("solution") or "",
            accepted_answers=list(data.get("accepted_answers") or []),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """insert / update 用。id と created_at は DB 側で決まるので含めない。"""
        return {
            "subject": self.subject,
            "category": self.category,
            "level": self.level,
            "question": self.question,
            "solution": self.solution,
            "answer": self.answer,
            "accepted_answers": list(self.accepted_answers),
        }

    def is_correct(self, user_answer: Optional[str]) -> bool:
        return normalize_answer(user_answer) == normalize_answer(self.answer)


# ----------------------------------------------------------------------
# scores
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ScoreRecord:
    """完了したセッション 1 回につき 1 行だけ作られる。更新はしない。"""

    user_id: str
    quiz_id: str
    score: int
    time_taken: int
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "quiz_id": self.quiz_id,
            "score": self.score,
            "time_taken": self.time_taken,
        }


@dataclass(frozen=True)
class LeaderboardRow:
    """scores + profiles!inner(lastname) + quizzes!inner(category, subject)"""

    score: float
    time_taken: float
    lastname: str
    category: str
    subject: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LeaderboardRow":
        profile = row.get("profiles") or {}
        quiz = row.get("quizzes") or {}
        return cls(
            score=float(row.get("score") or 0),
            time_taken=float(row.get("time_taken") or 0),
            lastname=profile.get("lastname") or "",
            category=quiz.get("category") or "",
            subject=quiz.get("subject") or "",
        )


@dataclass(frozen=True)
class ScoreWithQuiz:
    """
    レーダーチャート・エクスポート用。
    scores + quizzes!quiz_id(subject, category) [+ profiles!user_id(...)]
    """

    id: str
    score: Optional[float]
    time_taken: Optional[float]
    created_at: str
    quiz_id: str
    subject: str = ""
    category: str = ""
    firstname: str = ""
    lastname: str = ""
    email: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ScoreWithQuiz":
        quiz = row.get("quizzes") or {}
        profile = row.get("profiles") or {}
        score = row.get("score")
        time_taken = row.get("time_taken")
        return cls(
            id=str(row.get("id") or ""),
            score=float(score) if score is not None else None,
            time_taken=float(time_taken) if time_taken is not None else None,
            created_at=row.get("created_at") or _now_iso(),
            quiz_id=str(row.get("quiz_id") or ""),
            subject=quiz.get("subject") or "",
            category=quiz.get("category") or "",
            firstname=profile.get("firstname") or "",
            lastname=profile.get("lastname") or "",
            email=profile.get("email") or "",
        )

    @property
    def full_name(self) -> str:
        name = f"{self.lastname}, {self.firstname}".strip(", ").strip()
        return name or "N/A"


# ----------------------------------------------------------------------
# profiles / 認証
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class AuthSession:
    """
    ログイン中ユーザーの情報。
    グローバルには置かず、st.session_state["auth"] から各処理へ明示的に渡す。
    """

    user_id: str
    email: str
    firstname: str = ""
    lastname: str = ""
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip() or self.email
