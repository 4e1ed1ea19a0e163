"""
generator.py
======================

Google Gemini API で 4 択クイズ（5 問）を作る補助機能。

要件:
- 指定トピックについて JSON 配列形式のクイズを生成させる
- 応答テキストの最初の "[" から最後の "]" までを切り出して JSON として読む
- choices が 4 要素のリストでない問題は捨てる
- 形式不正・API エラーはログに残して [] を返す（画面にはエラーを出さない）
- 指定モデルが使えない場合は一覧から generateContent 対応モデルへ順に切り替える
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError, ResourceExhausted

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
NUM_QUESTIONS = 5
NUM_CHOICES = 4

PROMPT_TEMPLATE = """
Generate a {count}-item multiple-choice quiz about "{topic}".
Format it as a JSON array like this:
[
  {{
    "question": "...",
    "choices": ["A", "B", "C", "D"],
    "answer": "B"
  }}
]
"""


def build_prompt(topic: str, count: int = NUM_QUESTIONS) -> str:
    return PROMPT_TEMPLATE.format(topic=topic.strip(), count=count)


def parse_quiz_json(text: Optional[str]) -> List[Dict[str, Any]]:
    """
    モデルの応答から問題リストを取り出す。
    前後に説明文やコードフェンスが付いていてもよい。
    """
    if not text:
        return []

    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end < start:
        logger.warning("Gemini output has no JSON array")
        return []

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.warning("Gemini output is not valid JSON: %s", e)
        return []

    if not isinstance(data, list):
        return []

    items: List[Dict[str, Any]] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        choices = entry.get("choices")
        if not isinstance(choices, list) or len(choices) != NUM_CHOICES:
            continue
        items.append({
            "question": str(entry.get("question", "")),
            "choices": [str(c) for c in choices],
            "answer": str(entry.get("answer", "")),
        })

    if len(items) < len(data):
        logger.warning("Dropped %d malformed quiz item(s)", len(data) - len(items))
    return items


class QuizGenerator:
    """
    Gemini 呼び出しのラッパー。

    主な機能:
    - list_models(): generateContent に対応したモデル一覧
    - candidate_models(): 優先モデル → その他の順に並べた候補
    - generate(topic): クイズ生成（失敗時は []）
    """

    def __init__(self, api_key: str, preferred_model: str = DEFAULT_MODEL):
        self.api_key = api_key
        self.preferred_model = preferred_model
        genai.configure(api_key=api_key)
        self._cached_models: List[str] = []

    # ------------------------------------------------------------
    # モデル一覧
    # ------------------------------------------------------------
    def list_models(self) -> List[str]:
        if self._cached_models:
            return self._cached_models
        try:
            response = genai.list_models()
        except GoogleAPIError as e:
            logger.warning("Could not list Gemini models: %s", e)
            return []

        models = []
        for m in response:
            methods = getattr(m, "supported_generation_methods", []) or []
            if "generateContent" in methods:
                # "models/gemini-1.5-flash" → "gemini-1.5-flash"
                models.append(m.name.split("/", 1)[-1])

        self._cached_models = models
        return models

    def candidate_models(self) -> List[str]:
        others = [m for m in self.list_models() if m != self.preferred_model]
        return [self.preferred_model] + sorted(others, reverse=True)

    # ------------------------------------------------------------
    # 生成
    # ------------------------------------------------------------
    def generate_text(self, prompt: str) -> Optional[str]:
        for model_name in self.candidate_models():
            try:
                model = genai.GenerativeModel(model_name)
                response = model.generate_content(prompt)
                return response.text
            except ResourceExhausted:
                # クォータ上限（429）は他のモデルでも同じなので打ち切る
                logger.warning("Gemini quota exhausted on %s", model_name)
                return None
            except GoogleAPIError as e:
                logger.warning("Gemini call failed on %s: %s", model_name, e)
                continue
            except ValueError as e:
                # 安全フィルタなどで response.text が読めない
                logger.warning("Gemini returned no text on %s: %s", model_name, e)
                continue

        logger.error("All Gemini models failed")
        return None

    def generate(self, topic: str, count: int = NUM_QUESTIONS) -> List[Dict[str, Any]]:
        if not (topic or "").strip():
            return []
        text = self.generate_text(build_prompt(topic, count))
        return parse_quiz_json(text)
