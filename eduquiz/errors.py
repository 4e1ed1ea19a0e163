"""
errors.py
======================

アプリ内で扱う例外の定義。

分類:
- BackendError       : Supabase への通信・クエリ失敗
- ValidationError    : 必須項目の欠落・数値として解釈できない入力など
- AuthError          : サインイン / 登録の失敗（画面にそのまま出すメッセージを持つ）
- AuthRequiredError  : 未ログインでスコア保存しようとした（設定で "error" の場合のみ）
- EmptyCategoryError : 選択したカテゴリに問題が 1 問もない

どれもプロセスを落とすためのものではなく、画面側で st.error / st.warning に変換する。
"""

from __future__ import annotations

from typing import Dict, Optional


class EduQuizError(Exception):
    """本パッケージの例外の基底クラス。"""


class BackendError(EduQuizError):
    """Supabase 呼び出しの失敗。operation には失敗した操作名が入る。"""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


class ValidationError(EduQuizError):
    """
    入力検証エラー。

    field_errors には「フィールド名 → メッセージ」を入れておくと、
    画面側で入力欄の直下に表示できる。
    """

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors or {})


class AuthError(EduQuizError):
    """サインイン・登録の失敗。message はそのままユーザーに見せてよい文言。"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthRequiredError(AuthError):
    """ログインしていないためスコアを保存できなかった。"""


class EmptyCategoryError(EduQuizError):
    """カテゴリに問題が無くクイズを開始できない。"""

    def __init__(self, subject: str, category: str):
        super().__init__(f"No quizzes for {subject} / {category}")
        self.subject = subject
        self.category = category
