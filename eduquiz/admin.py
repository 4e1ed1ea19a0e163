"""
admin.py
======================

管理者向けの処理。

- 問題の追加・編集・削除（quizzes テーブル）
- ホーム画面の集計（ロール別ユーザー数、最近のログイン、週間アクティビティ）
- 全スコアの Excel エクスポート（pandas + openpyxl）

同時編集の排他はしない（後勝ち）。監査ログも残さない。
"""

from __future__ import annotations

import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .backend import Backend
from .config import ARITHMETIC, MOTION
from .errors import ValidationError
from .leaderboard import RadarStats, format_percent, radar_for_subject
from .models import QuizItem, ScoreWithQuiz

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields!"
LOGINS_PER_PAGE = 3
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

EXPORT_SHEET = "All Results"
EXPORT_COLUMNS = ["Full Name", "Email", "Subject", "Category", "Score", "Time Taken (s)", "Date Taken"]
EXPORT_WIDTHS = [30, 25, 25, 20, 10, 15, 25]


# ----------------------------------------------------------------------
# 問題フォーム
# ----------------------------------------------------------------------
def add_accepted_answer(answers: Sequence[str], value: str) -> List[str]:
    """別解を 1 つ追加する。空欄と大文字小文字違いの重複は無視。"""
    v = (value or "").strip()
    current = list(answers)
    if not v:
        return current
    if any(a.lower() == v.lower() for a in current):
        return current
    current.append(v)
    return current


def parse_accepted_answers(text: str) -> List[str]:
    """編集フォームのテキストエリア（1 行 1 つ）をリストにする。"""
    result: List[str] = []
    for line in (text or "").splitlines():
        result = add_accepted_answer(result, line)
    return result


def _parse_level(level: Any) -> Optional[int]:
    """level は 1 以上の整数。それ以外は None。"""
    try:
        value = int(level)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def build_quiz_payload(
    subject: str,
    category: str,
    level: Any,
    question: str,
    answer: str,
    solution: str = "",
    accepted_answers: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    追加フォームの入力を検証して insert 用の dict を作る。
    必須項目が欠けていれば ValidationError。
    """
    subject = (subject or "").strip()
    category = (category or "").strip()
    question = (question or "").strip()
    answer = (answer or "").strip()

    errors: Dict[str, str] = {}
    for name, value in (("subject", subject), ("category", category),
                        ("question", question), ("answer", answer)):
        if not value:
            errors[name] = "Required"

    level_value = _parse_level(level)
    if level_value is None:
        errors["level"] = "Required"

    if errors:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE, errors)

    deduped: List[str] = []
    for a in accepted_answers or []:
        deduped = add_accepted_answer(deduped, a)

    item = QuizItem(
        id="",
        subject=subject,
        category=category,
        level=level_value,
        question=question,
        answer=answer,
        solution=(solution or "").strip(),
        accepted_answers=deduped,
    )
    return item.to_dict()


class QuizAdmin:
    """quizzes テーブルの CRUD。書き込み失敗は BackendError のまま呼び出し側へ。"""

    def __init__(self, backend: Backend):
        self.backend = backend

    def list_quizzes(self, subject: str) -> List[QuizItem]:
        return self.backend.fetch_quizzes_for_admin(subject)

    def create(self, **fields) -> Dict[str, Any]:
        payload = build_quiz_payload(**fields)
        self.backend.insert_quiz(payload)
        return payload

    def update(
        self,
        quiz_id: str,
        category: str,
        level: Any,
        question: str,
        answer: str,
        solution: str = "",
        accepted_answers_text: str = "",
    ) -> Dict[str, Any]:
        """編集フォームの内容で上書きする。level を変えるとクイズ内の出題順も変わる。"""
        category = (category or "").strip()
        question = (question or "").strip()
        answer = (answer or "").strip()
        errors = {}
        for name, value in (("category", category), ("question", question), ("answer", answer)):
            if not value:
                errors[name] = "Required"
        level_value = _parse_level(level)
        if level_value is None:
            errors["level"] = "Required"
        if errors:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE, errors)

        changes = {
            "category": category,
            "level": level_value,
            "question": question,
            "answer": answer,
            "solution": (solution or "").strip(),
            "accepted_answers": parse_accepted_answers(accepted_answers_text),
        }
        self.backend.update_quiz(quiz_id, changes)
        logger.info("Quiz %s updated", quiz_id)
        return changes

    def delete(self, quiz_id: str) -> None:
        self.backend.delete_quiz(quiz_id)
        logger.info("Quiz %s deleted", quiz_id)


# ----------------------------------------------------------------------
# ホーム画面の集計
# ----------------------------------------------------------------------
def user_counts(backend: Backend) -> Dict[str, int]:
    admin = backend.count_profiles("admin")
    user = backend.count_profiles("user")
    return {"admin": admin, "user": user, "total": admin + user}


def paginate(rows: Sequence[Any], page: int, per_page: int = LOGINS_PER_PAGE) -> Tuple[List[Any], int]:
    """(そのページの行, 総ページ数)。page は 0 始まりで範囲外は端に寄せる。"""
    pages = max(1, -(-len(rows) // per_page))
    page = max(0, min(page, pages - 1))
    start = page * per_page
    return list(rows[start:start + per_page]), pages


def recent_logins(backend: Backend, page: int = 0) -> Tuple[List[Dict[str, Any]], int]:
    return paginate(backend.fetch_login_logs(), page)


def week_start_for(day: date) -> date:
    """その日を含む週の日曜日。"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _parse_timestamp(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


def count_activity(scores: Sequence[ScoreWithQuiz]) -> List[Dict[str, Any]]:
    """曜日（日曜始まり）ごとに教科別の受験回数を数える。"""
    counts = {d: {"arithmetic": 0, "motion": 0} for d in WEEKDAYS}
    for s in scores:
        ts = _parse_timestamp(s.created_at)
        if ts is None:
            continue
        day = WEEKDAYS[(ts.weekday() + 1) % 7]
        subject = s.subject.lower()
        if "arithmetic" in subject:
            counts[day]["arithmetic"] += 1
        elif "motion" in subject:
            counts[day]["motion"] += 1
    return [{"day": d, **counts[d]} for d in WEEKDAYS]


def weekly_activity(backend: Backend, week_start: date) -> List[Dict[str, Any]]:
    start = datetime.combine(week_start, time.min, tzinfo=timezone.utc)
    end = datetime.combine(week_start + timedelta(days=6), time.max, tzinfo=timezone.utc)
    scores = backend.fetch_scores_between(start.isoformat(), end.isoformat())
    return count_activity(scores)


# ----------------------------------------------------------------------
# Excel エクスポート
# ----------------------------------------------------------------------
def _result_rows(scores: Sequence[ScoreWithQuiz]) -> List[Dict[str, Any]]:
    rows = []
    for s in scores:
        ts = _parse_timestamp(s.created_at)
        rows.append({
            "Full Name": s.full_name,
            "Email": s.email or "N/A",
            "Subject": s.subject or "N/A",
            "Category": s.category or "N/A",
            "Score": s.score if s.score is not None else 0,
            "Time Taken (s)": s.time_taken if s.time_taken is not None else 0,
            "Date Taken": ts.strftime("%Y-%m-%d %H:%M:%S") if ts else s.created_at,
        })
    return rows


def _summary_rows(radars: Dict[str, RadarStats]) -> List[Dict[str, Any]]:
    return [
        {
            "Subject": subject,
            "⏱ Time (%)": format_percent(stats.time),
            "🧩 Problem Solving (%)": format_percent(stats.problem_solving),
            "🧮 Solving (%)": format_percent(stats.solving),
        }
        for subject, stats in radars.items()
    ]


def build_export_workbook(
    scores: Sequence[ScoreWithQuiz],
    radars: Dict[str, RadarStats],
    today: Optional[date] = None,
) -> Tuple[io.BytesIO, str]:
    """
    1 シートに「平均サマリー」と「全生徒の結果」を上下に並べた xlsx を作る。
    Returns: (BytesIO, ファイル名)
    """
    summary = pd.DataFrame(_summary_rows(radars))
    results = pd.DataFrame(_result_rows(scores), columns=EXPORT_COLUMNS)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame({"📊 AVERAGE SUMMARY": []}).to_excel(writer, sheet_name=EXPORT_SHEET, index=False)
        summary.to_excel(writer, sheet_name=EXPORT_SHEET, index=False, startrow=1)

        results_row = len(summary) + 4
        pd.DataFrame({"STUDENT QUIZ RESULTS": []}).to_excel(
            writer, sheet_name=EXPORT_SHEET, index=False, startrow=results_row - 1
        )
        results.to_excel(writer, sheet_name=EXPORT_SHEET, index=False, startrow=results_row)

        sheet = writer.sheets[EXPORT_SHEET]
        for i, width in enumerate(EXPORT_WIDTHS):
            sheet.column_dimensions[chr(ord("A") + i)].width = width

    output.seek(0)
    day = today or date.today()
    filename = f"All_Student_Results_{day.isoformat()}.xlsx"
    return output, filename


def export_scores_workbook(backend: Backend, today: Optional[date] = None) -> Optional[Tuple[io.BytesIO, str]]:
    """全スコアを取得して xlsx にする。スコアが 1 件も無ければ None。"""
    scores = backend.fetch_all_scores()
    if not scores:
        logger.info("No scores to export")
        return None
    radars = {subject: radar_for_subject(backend, subject) for subject in (ARITHMETIC, MOTION)}
    output, filename = build_export_workbook(scores, radars, today)
    logger.info("Exported %d score rows to %s", len(scores), filename)
    return output, filename

