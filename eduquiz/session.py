"""
session.py
======================

1 回分のクイズ挑戦（セッション）の進行を管理するモジュール。

流れ:
    カテゴリ選択 → 問題を level 順に固定 → 1 問ずつ 60 秒のカウントダウン
    → 解答 or 時間切れで採点して次へ → 最後の問題の後に完了

- 解答の比較は前後空白を除いて大文字小文字を無視する
- 時間切れは未入力でも不正解として次へ進む（1 問につき 1 回だけ）
- 「カテゴリ選択に戻る」でセッションは破棄され、途中スコアは保存しない
  （破棄は呼び出し側が st.session_state から消すだけ）
- 時刻は clock 引数で差し替えられる（テストでは手動クロックを使う）

セッションそのものは永続化しない。完了後に scores.ScoreRecorder が
ScoreRecord を 1 行だけ書き込む。
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .catalog import snapshot
from .errors import EmptyCategoryError, ValidationError
from .models import QuizItem

Clock = Callable[[], float]

QUESTION_SECONDS = 60
BLANK_ANSWER_WARNING = "⚠️ Please enter your answer before proceeding."

# 点数ごとの完了メッセージ（5 問を想定）
SCORE_MESSAGES = {
    0: "😢 Better luck next time!",
    1: "🙂 You got 1 correct, keep practicing!",
    2: "👍 Nice effort, you got 2 correct!",
    3: "👏 Good job! 3 correct answers!",
    4: "🔥 Almost perfect! You got 4!",
    5: "🏆 Perfect score! Excellent work!",
}
DEFAULT_MESSAGE = "🎉 Quiz completed!"


# ----------------------------------------------------------------------
# タイマー
# ----------------------------------------------------------------------
class QuestionTimer:
    """1 問ごとのカウントダウン。reset() で残り時間が満タンに戻る。"""

    def __init__(self, duration: int = QUESTION_SECONDS, clock: Clock = time.monotonic):
        self.duration = duration
        self.clock = clock
        self._started_at = clock()

    def reset(self) -> None:
        self._started_at = self.clock()

    def remaining(self) -> int:
        """残り秒数（切り上げ、0 未満にはならない）。"""
        left = self.duration - (self.clock() - self._started_at)
        return max(0, math.ceil(left))

    def expired(self) -> bool:
        return self.remaining() <= 0


# ----------------------------------------------------------------------
# 解答ログ
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class AnswerRecord:
    quiz_id: str
    level: int
    question: str
    correct_answer: str
    solution: str
    given_answer: str
    is_correct: bool
    timed_out: bool = False


# ----------------------------------------------------------------------
# セッション本体
# ----------------------------------------------------------------------
class QuizSession:
    """
    1 カテゴリ分のクイズ進行。

    主な操作:
    - start()          : 問題リストからセッションを作る（空なら EmptyCategoryError）
    - submit(answer)   : 明示的な解答。空欄は ValidationError
    - poll(draft)      : 時間切れなら draft で採点して次へ（その問題で 1 回だけ）
    - remaining()      : 現在の問題の残り秒数
    """

    def __init__(
        self,
        subject: str,
        category: str,
        items: Sequence[QuizItem],
        clock: Clock = time.monotonic,
        question_seconds: int = QUESTION_SECONDS,
    ):
        if not items:
            raise EmptyCategoryError(subject, category)

        self.subject = subject
        self.category = category
        self.items: Tuple[QuizItem, ...] = snapshot(list(items))
        self.clock = clock
        self.index = 0
        self.score = 0
        self.answers: List[AnswerRecord] = []
        self.started_at = clock()
        self.finished_at: Optional[float] = None
        self.timer = QuestionTimer(question_seconds, clock)
        # ScoreRecorder が二重保存しないための印
        self.saved = False

    @classmethod
    def start(
        cls,
        subject: str,
        category: str,
        items: Sequence[QuizItem],
        clock: Clock = time.monotonic,
        question_seconds: int = QUESTION_SECONDS,
    ) -> "QuizSession":
        return cls(subject, category, items, clock=clock, question_seconds=question_seconds)

    # ------------------------------------------------------------------
    # 状態参照
    # ------------------------------------------------------------------
    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    @property
    def current_item(self) -> Optional[QuizItem]:
        if self.finished:
            return None
        return self.items[self.index]

    @property
    def first_quiz_id(self) -> str:
        return self.items[0].id

    def remaining(self) -> int:
        if self.finished:
            return 0
        return self.timer.remaining()

    def elapsed_seconds(self) -> float:
        """開始からの経過秒数。完了後は完了時点で止まる。"""
        end = self.finished_at if self.finished_at is not None else self.clock()
        return end - self.started_at

    def progress_ratio(self) -> float:
        return len(self.answers) / float(self.total)

    def summary_message(self) -> str:
        return SCORE_MESSAGES.get(self.score, DEFAULT_MESSAGE)

    # ------------------------------------------------------------------
    # 操作
    # ------------------------------------------------------------------
    def submit(self, answer: Optional[str], shown_index: Optional[int] = None) -> Optional[AnswerRecord]:
        """
        「Next」ボタンでの解答。空欄なら進まずに ValidationError。

        shown_index はボタンが押された画面の問題番号。
        同じ再実行の poll() で既に次へ進んでいれば、その押下は無視して None を返す。
        """
        if shown_index is not None and shown_index != self.index:
            return None
        if self.finished:
            raise RuntimeError("Session already finished")
        if not (answer or "").strip():
            raise ValidationError(BLANK_ANSWER_WARNING, {"answer": "Required"})
        return self._record(answer or "", timed_out=False)

    def poll(self, draft_answer: Optional[str] = "") -> Optional[AnswerRecord]:
        """
        タイマーを確認し、時間切れなら入力途中の draft_answer で採点して進める。

        次の問題へ進むとタイマーは満タンに戻るので、
        同じ問題で 2 回以上自動送りされることはない。
        """
        if self.finished or not self.timer.expired():
            return None
        return self._record(draft_answer or "", timed_out=True)

    def _record(self, answer: str, timed_out: bool) -> AnswerRecord:
        item = self.items[self.index]
        correct = item.is_correct(answer)
        if correct:
            self.score += 1

        record = AnswerRecord(
            quiz_id=item.id,
            level=item.level,
            question=item.question,
            correct_answer=item.answer,
            solution=item.solution,
            given_answer=answer,
            is_correct=correct,
            timed_out=timed_out,
        )
        self.answers.append(record)
        self._advance()
        return record

    def _advance(self) -> None:
        if self.index < self.total - 1:
            self.index += 1
            self.timer.reset()
        else:
            self.finished_at = self.clock()
