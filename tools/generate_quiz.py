"""
tools/generate_quiz.py
===========================

Gemini に 4 択の練習問題を作らせ、JSON として標準出力に表示するスクリプト。

管理者が問題を追加する前の下書きづくりに使う。
生成結果は quizzes テーブルには書き込まない。

前提:
- 環境変数（または .env）に GEMINI_API_KEY が設定されている
- リポジトリ直下で `pip install -e .` 済みであること
  （eduquiz パッケージと google-generativeai が import できる状態）

例:
    python tools/generate_quiz.py "arithmetic sequence word problems" --count 5
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from eduquiz.config import load_app_config, setup_logging
from eduquiz.generator import NUM_QUESTIONS, QuizGenerator

logger = logging.getLogger("eduquiz.tools.generate_quiz")


# -------------------------------------------------------------
#  CLI エントリーポイント
# -------------------------------------------------------------
def main() -> int:
    parser = argparse.ArgumentParser(
        description="EduQuiz 用 4 択練習問題の生成スクリプト",
    )
    parser.add_argument(
        "topic",
        help="問題のトピック（例: 'uniform motion'）",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=NUM_QUESTIONS,
        help=f"生成する問題数（デフォルト: {NUM_QUESTIONS}）",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="優先的に使いたい Gemini モデル名（任意）",
    )
    args = parser.parse_args()

    cfg = load_app_config()
    setup_logging(cfg.log_level)

    if not cfg.has_gemini:
        logger.error("GEMINI_API_KEY が設定されていません。")
        return 1

    generator = QuizGenerator(cfg.gemini_api_key, args.model or cfg.gemini_model)
    items = generator.generate(args.topic, count=args.count)
    if not items:
        print("問題は生成されませんでした。", file=sys.stderr)
        return 1

    print(json.dumps(items, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
