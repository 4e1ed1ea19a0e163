"""
catalog.py
===========================

quizzes テーブルから教科ごとの問題を読み込み、
カテゴリ別の抽出・並べ替えを行うモジュール。

目的:
- 1 画面の間は同じ問題リストを使い回す（再実行ごとに Supabase を叩かない）
- カテゴリ内は level 昇順
- セッション開始時点のスナップショット（tuple）を返し、
  管理者が途中で問題を追加・削除しても進行中のクイズに影響させない
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from .backend import Backend
from .models import QuizItem


class QuizCatalog:
    """
    1 教科分の問題カタログ。

    load() するまでは空。読み込みに失敗した場合も空のまま
    （Backend 側でログ済み）。
    """

    def __init__(self, backend: Backend, subject: str):
        self.backend = backend
        self.subject = subject
        self._items: List[QuizItem] = []
        self._loaded = False

    # ------------------------------------------------------------------
    # 読み込み
    # ------------------------------------------------------------------
    def load(self, force_reload: bool = False) -> List[QuizItem]:
        if self._loaded and not force_reload:
            return self._items

        self._items = self.backend.fetch_quizzes(self.subject)
        self._loaded = True
        return self._items

    # ------------------------------------------------------------------
    # 抽出
    # ------------------------------------------------------------------
    def items_for_category(self, category: str) -> Tuple[QuizItem, ...]:
        """カテゴリ内の問題を level 昇順（同 level は取得順）で固定した tuple。"""
        return snapshot([q for q in self.load() if q.category == category])

    def count_by_category(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for q in self.load():
            counts[q.category] = counts.get(q.category, 0) + 1
        return counts


def snapshot(items: List[QuizItem]) -> Tuple[QuizItem, ...]:
    """level で安定ソートしたうえで変更不可の tuple にする。"""
    return tuple(sorted(items, key=lambda q: q.level))
