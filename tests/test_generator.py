import json
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import GoogleAPIError, ResourceExhausted

from eduquiz import generator
from eduquiz.generator import QuizGenerator, build_prompt, parse_quiz_json

SAMPLE = [
    {"question": "What is d in 2, 5, 8?", "choices": ["1", "2", "3", "4"], "answer": "3"},
    {"question": "v for 10 m in 2 s?", "choices": ["2", "5", "10", "20"], "answer": "5"},
]


def test_build_prompt():
    prompt = build_prompt("  arithmetic sequence ")
    assert '5-item multiple-choice quiz about "arithmetic sequence"' in prompt
    assert '"choices": ["A", "B", "C", "D"]' in prompt


def test_parse_with_surrounding_text():
    text = "Here is your quiz:\n```json\n" + json.dumps(SAMPLE) + "\n```\nGood luck!"
    assert parse_quiz_json(text) == SAMPLE


def test_parse_drops_items_without_four_choices():
    data = SAMPLE + [{"question": "bad", "choices": ["a", "b", "c"], "answer": "a"}, "junk"]
    assert parse_quiz_json(json.dumps(data)) == SAMPLE


@pytest.mark.parametrize("text", [None, "", "no json here", "[not, valid", '{"question": "x"}', "[1, 2"])
def test_parse_malformed_returns_empty(text):
    assert parse_quiz_json(text) == []


# ----------------------------------------------------------------------
# Gemini 呼び出し（genai をフェイクに差し替える）
# ----------------------------------------------------------------------
class FakeGenAI:
    def __init__(self, behaviours, models=("models/gemini-1.5-flash", "models/gemini-2.0-flash")):
        self.behaviours = behaviours
        self.models = models
        self.called = []
        self.configured_with = None

    def configure(self, api_key):
        self.configured_with = api_key

    def list_models(self):
        return [SimpleNamespace(name=m, supported_generation_methods=["generateContent"]) for m in self.models] + [
            SimpleNamespace(name="models/embedding-001", supported_generation_methods=["embedContent"]),
        ]

    def GenerativeModel(self, name):
        fake = self

        class _Model:
            def generate_content(self, prompt):
                fake.called.append(name)
                result = fake.behaviours.get(name, GoogleAPIError("unavailable"))
                if isinstance(result, Exception):
                    raise result
                return SimpleNamespace(text=result)

        return _Model()


@pytest.fixture
def fake_genai(monkeypatch):
    def install(behaviours, **kwargs):
        fake = FakeGenAI(behaviours, **kwargs)
        monkeypatch.setattr(generator, "genai", fake)
        return fake
    return install


def test_generate_uses_preferred_model(fake_genai):
    fake = fake_genai({"gemini-1.5-flash": json.dumps(SAMPLE)})
    gen = QuizGenerator("key-123")
    assert gen.generate("uniform motion") == SAMPLE
    assert fake.configured_with == "key-123"
    assert fake.called == ["gemini-1.5-flash"]


def test_candidate_models_only_text_models(fake_genai):
    fake_genai({})
    gen = QuizGenerator("key", preferred_model="gemini-1.5-flash")
    assert gen.candidate_models() == ["gemini-1.5-flash", "gemini-2.0-flash"]


def test_generate_falls_over_on_api_error(fake_genai):
    fake = fake_genai({
        "gemini-1.5-flash": GoogleAPIError("boom"),
        "gemini-2.0-flash": "```" + json.dumps(SAMPLE) + "```",
    })
    assert QuizGenerator("key").generate("sequences") == SAMPLE
    assert fake.called == ["gemini-1.5-flash", "gemini-2.0-flash"]


def test_quota_exhausted_returns_empty(fake_genai):
    fake = fake_genai({"gemini-1.5-flash": ResourceExhausted("quota")})
    assert QuizGenerator("key").generate("sequences") == []
    assert fake.called == ["gemini-1.5-flash"]


def test_all_models_failing_returns_empty(fake_genai):
    fake_genai({})
    assert QuizGenerator("key").generate("sequences") == []


def test_blank_topic_skips_call(fake_genai):
    fake = fake_genai({"gemini-1.5-flash": json.dumps(SAMPLE)})
    assert QuizGenerator("key").generate("   ") == []
    assert fake.called == []
