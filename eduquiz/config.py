"""
config.py
=========

アプリ全体で利用する設定値を一元管理する。
Supabase の接続情報、Gemini API キー、クイズのタイマー秒数や
レーダーチャートの満点値などはすべてこのクラスを通じて取得する。

本ファイルは app.py と tools/generate_quiz.py の共通設定でもある。

設定の優先順位:
1. 環境変数 (SUPABASE_URL / SUPABASE_KEY / GEMINI_API_KEY)
2. ルートの .env
3. ルートの config.toml（[quiz] [scores] [gemini] [logging] など）
4. このファイルのデフォルト値
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

import toml


# ------------------------------------------------------------
# 基本パス定義
# ------------------------------------------------------------

ROOT_DIR = Path(__file__).resolve().parent.parent
CONFIG_TOML_PATH = ROOT_DIR / "config.toml"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ------------------------------------------------------------
# 教科・カテゴリ（quizzes テーブルの subject / category の値）
# ------------------------------------------------------------

ARITHMETIC = "Arithmetic Sequence"
MOTION = "Uniform Motion in Physics"
SUBJECTS = (ARITHMETIC, MOTION)

SOLVING = "Solving"
PROBLEM_SOLVING = "Problem Solving"
CATEGORIES = (SOLVING, PROBLEM_SOLVING)

MISSING_AUTH_POLICIES = ("skip", "error")


# ------------------------------------------------------------
# AppConfig
# ------------------------------------------------------------

@dataclass
class AppConfig:
    """
    アプリ設定クラス。

    - Supabase / Gemini のキー読み取り
    - 1 問あたりの制限時間
    - レーダーチャートの満点 (MAX_SCORE / MAX_TIME)
    - 未ログイン時のスコア保存ポリシー
    """

    # ---------- Supabase ----------
    supabase_url: str = ""
    supabase_key: str = ""

    # ---------- Gemini ----------
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    # ---------- クイズ ----------
    question_seconds: int = 60
    max_score: int = 5
    max_time: int = 300
    radar_history_limit: int = 50

    # ---------- スコア保存 ----------
    # "skip": 未ログインなら黙って保存しない / "error": AuthRequiredError を投げる
    on_missing_auth: str = "skip"

    # ---------- 表示 ----------
    app_name: str = "EduQuiz"
    log_level: str = "INFO"

    # ============================================================
    # 初期化処理
    # ============================================================

    def __post_init__(self):
        # キー類は引数で明示されていなければ環境変数 / .env から読む
        if not self.supabase_url:
            self.supabase_url = self._load_secret("SUPABASE_URL")
        if not self.supabase_key:
            self.supabase_key = self._load_secret("SUPABASE_KEY")
        if not self.gemini_api_key:
            self.gemini_api_key = self._load_secret("GEMINI_API_KEY")

        if self.on_missing_auth not in MISSING_AUTH_POLICIES:
            raise ValueError(
                f"on_missing_auth must be one of {MISSING_AUTH_POLICIES}, "
                f"got {self.on_missing_auth!r}"
            )

    # ============================================================
    # 内部関数
    # ============================================================

    @staticmethod
    def _load_secret(name: str) -> str:
        """
        Streamlit Cloud / ローカルすべてで同じ名前のキーが使えるようにする。
        """
        value = os.environ.get(name)
        if value:
            return value

        # ローカル開発などで .env を使いたい場合にも対応
        env_path = ROOT_DIR / ".env"
        if env_path.exists():
            for line in env_path.read_text().splitlines():
                if line.startswith(f"{name}="):
                    return line.split("=", 1)[1].strip()

        return ""

    # ============================================================
    # 便利プロパティ
    # ============================================================

    @property
    def has_backend(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)


# ------------------------------------------------------------
# config.toml の読み込み
# ------------------------------------------------------------

def load_app_config(path: Optional[Path] = None) -> AppConfig:
    """
    config.toml を読み込んで AppConfig を作る。
    ファイルが無い・壊れている場合はデフォルト値で作る。
    """
    path = Path(path) if path is not None else CONFIG_TOML_PATH
    cfg: Dict[str, Any] = {}

    if path.exists():
        try:
            cfg = toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            logging.getLogger(__name__).warning("config.toml を読めませんでした: %s", e)
            cfg = {}

    app_cfg = _section(cfg, "app")
    quiz_cfg = _section(cfg, "quiz")
    score_cfg = _section(cfg, "scores")
    gem_cfg = _section(cfg, "gemini")
    log_cfg = _section(cfg, "logging")

    return AppConfig(
        gemini_model=gem_cfg.get("preferred_model", "gemini-1.5-flash"),
        question_seconds=int(quiz_cfg.get("question_seconds", 60)),
        max_score=int(quiz_cfg.get("max_score", 5)),
        max_time=int(quiz_cfg.get("max_time", 300)),
        radar_history_limit=int(quiz_cfg.get("radar_history_limit", 50)),
        on_missing_auth=str(score_cfg.get("on_missing_auth", "skip")),
        app_name=str(app_cfg.get("name", "EduQuiz")),
        log_level=str(log_cfg.get("level", "INFO")).upper(),
    )


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name)
    return value if isinstance(value, dict) else {}


def setup_logging(level: str = "INFO") -> None:
    """ルートロガーを 1 度だけ設定する（Streamlit の再実行で二重登録しない）。"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
