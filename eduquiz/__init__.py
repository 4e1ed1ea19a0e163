"""
eduquiz パッケージ
======================

このパッケージは、等差数列 / 等速直線運動 の学習クイズアプリの内部ロジックを提供する。

主な役割:
- 設定管理（config）
- Supabase へのアクセス（backend）
- 認証（auth）
- 問題カタログとクイズの進行（catalog, session）
- スコア保存・ランキング・レーダー集計（scores, leaderboard）
- 管理者向け CRUD と集計（admin）
- 公式計算機（calculators）
- Gemini による練習問題生成（generator）

app.py は Streamlit UI のみを担当し、内部ロジックはすべて本パッケージから呼ぶ。
UI コンポーネント（ui）は streamlit に依存するため、ここでは読み込まない。
"""

from .config import AppConfig, load_app_config
from .backend import Backend, create_backend
from .catalog import QuizCatalog
from .session import QuizSession, QuestionTimer
from .scores import ScoreRecorder
from .calculators import CalcResult, solve_arithmetic, solve_motion
from .generator import QuizGenerator

__all__ = [
    "AppConfig",
    "load_app_config",
    "Backend",
    "create_backend",
    "QuizCatalog",
    "QuizSession",
    "QuestionTimer",
    "ScoreRecorder",
    "CalcResult",
    "solve_arithmetic",
    "solve_motion",
    "QuizGenerator",
]
