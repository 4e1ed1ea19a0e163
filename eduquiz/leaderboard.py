"""
leaderboard.py
======================

ランキング表とレーダーチャート用の集計。

ランキング:
    score 降順 → 同点なら time_taken 昇順。
    Supabase 側でも同じ order を指定しているが、表示前にもう一度
    安定ソートしておく（取得元が変わっても並びが崩れないように）。

レーダーチャート（3 軸）:
    Time            = clamp(round((MAX_TIME - 平均時間) / MAX_TIME * 100), 0, 100)
    Solving         = min(100, round(Solving の平均点 / MAX_SCORE * 100))
    Problem Solving = min(100, round(Problem Solving の平均点 / MAX_SCORE * 100))

    生徒画面は整数に丸め、管理画面は小数第 2 位まで出す（digits で指定）。
    四捨五入は 0.5 を切り上げる（round() の偶数丸めは使わない）。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

import pandas as pd

from .backend import Backend
from .config import PROBLEM_SOLVING, SOLVING
from .models import AuthSession, LeaderboardRow, ScoreWithQuiz

MAX_SCORE = 5
MAX_TIME = 300


# ----------------------------------------------------------------------
# ランキング
# ----------------------------------------------------------------------
def sort_leaderboard(rows: Iterable[LeaderboardRow]) -> List[LeaderboardRow]:
    return sorted(rows, key=lambda r: (-r.score, r.time_taken))


def fetch_leaderboard(backend: Backend, subject: str, category: str) -> List[LeaderboardRow]:
    return sort_leaderboard(backend.fetch_leaderboard(subject, category))


def format_time(seconds: Optional[float]) -> str:
    """秒数を m:ss 表記にする。数値でなければ 0:00。"""
    if seconds is None or not math.isfinite(seconds):
        return "0:00"
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def leaderboard_frame(rows: List[LeaderboardRow]) -> pd.DataFrame:
    """表示用の DataFrame（順位は 1 始まり）。"""
    data = [
        {
            "Rank": i + 1,
            "Name": r.lastname,
            "Score": int(round_half_up(r.score)),
            "Time": format_time(r.time_taken),
        }
        for i, r in enumerate(rows)
    ]
    return pd.DataFrame(data, columns=["Rank", "Name", "Score", "Time"])


# ----------------------------------------------------------------------
# レーダーチャート
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class RadarStats:
    time: float = 0
    solving: float = 0
    problem_solving: float = 0

    def as_axes(self) -> dict:
        return {
            "⏱ Time": self.time,
            "🧩 Problem Solving": self.problem_solving,
            "🧮 Solving": self.solving,
        }


def round_half_up(value: float, digits: int = 0) -> float:
    quant = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP))


def time_percentage(avg_time: float, max_time: float = MAX_TIME, digits: int = 0) -> float:
    raw = (max_time - avg_time) / max_time * 100
    return max(0.0, min(100.0, round_half_up(raw, digits)))


def score_percentage(avg_score: float, max_score: float = MAX_SCORE, digits: int = 0) -> float:
    return min(100.0, round_half_up(avg_score / max_score * 100, digits))


def compute_radar(
    scores: List[ScoreWithQuiz],
    subject: str,
    max_score: float = MAX_SCORE,
    max_time: float = MAX_TIME,
    digits: int = 0,
) -> RadarStats:
    """
    指定教科のスコア一覧から 3 軸の百分率を出す。
    該当スコアが無ければすべて 0。
    """
    rows = [
        {"category": s.category, "score": s.score, "time_taken": s.time_taken or 0.0}
        for s in scores
        if s.subject == subject
    ]
    if not rows:
        return RadarStats()

    df = pd.DataFrame(rows)
    time_pct = time_percentage(float(df["time_taken"].mean()), max_time, digits)

    def category_pct(category: str) -> float:
        part = df[(df["category"] == category) & df["score"].notna()]
        if part.empty:
            return 0.0
        return score_percentage(float(part["score"].mean()), max_score, digits)

    return RadarStats(
        time=time_pct,
        solving=category_pct(SOLVING),
        problem_solving=category_pct(PROBLEM_SOLVING),
    )


def radar_for_user(
    backend: Backend,
    auth: Optional[AuthSession],
    subject: str,
    max_score: float = MAX_SCORE,
    max_time: float = MAX_TIME,
    limit: int = 50,
) -> RadarStats:
    """生徒画面: 自分の直近 limit 件から計算する。未ログインなら 0。"""
    if auth is None:
        return RadarStats()
    scores = backend.fetch_user_scores(auth.user_id, limit=limit)
    return compute_radar(scores, subject, max_score, max_time)


def radar_for_subject(
    backend: Backend,
    subject: str,
    max_score: float = MAX_SCORE,
    max_time: float = MAX_TIME,
) -> RadarStats:
    """管理画面: 全ユーザー分を小数第 2 位まで。"""
    scores = backend.fetch_subject_scores(subject)
    return compute_radar(scores, subject, max_score, max_time, digits=2)


def format_percent(value: float) -> str:
    return f"{int(value)}%" if float(value).is_integer() else f"{value:.2f}%"
