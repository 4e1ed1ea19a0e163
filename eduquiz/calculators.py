"""
calculators.py
======================

練習画面の公式計算機。すべて純粋関数で、入力は画面から来た文字列のまま受け取る。

等差数列:
    aₙ = a₁ + (n − 1)d
    a₁ = aₙ − (n − 1)d
    n  = (aₙ − a₁) / d + 1
    d  = (aₙ − a₁) / (n − 1)

等速直線運動:
    v  = Δx / Δt
    Δx = v × Δt
    Δt = Δx / v

入力が足りない・数値でない・0 除算などの場合は例外にせず、
CalcResult.warning に画面表示用の文言を入れて返す。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

MISSING_INPUT = "⚠️ No numbers input. Please fill all required fields."
INVALID_INPUT = "⚠️ That number is not valid for this formula."

# 等差数列: 求める量 → 必要な入力（エラー表示の優先順）
ARITHMETIC_TARGETS: Dict[str, Tuple[str, ...]] = {
    "an": ("a1", "n", "d"),
    "a1": ("an", "n", "d"),
    "n": ("an", "a1", "d"),
    "d": ("an", "a1", "n"),
}

MOTION_TARGETS: Dict[str, Tuple[str, ...]] = {
    "v": ("dx", "dt"),
    "dx": ("v", "dt"),
    "dt": ("v", "dx"),
}


@dataclass
class CalcResult:
    """
    answer       : 最終的な答え（例: "a5 = 13"）。失敗時は空文字
    steps        : 途中式
    warning      : 失敗時の警告文
    field_errors : 入力欄ごとのメッセージ（提案も含む）
    """

    answer: str = ""
    steps: List[str] = field(default_factory=list)
    warning: str = ""
    field_errors: Dict[str, str] = field(default_factory=dict)
    value: Optional[float] = None

    @property
    def ok(self) -> bool:
        return not self.warning


def format_number(value: float) -> str:
    """整数ならそのまま、そうでなければ小数第 2 位まで。"""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def _fail(message: str, field_errors: Optional[Dict[str, str]] = None) -> CalcResult:
    return CalcResult(warning=message, field_errors=dict(field_errors or {}))


def _parse_number(text: Optional[str]) -> Optional[float]:
    try:
        value = float((text or "").strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _missing(inputs: Dict[str, Optional[str]], required: Tuple[str, ...]) -> Optional[str]:
    for name in required:
        if not (inputs.get(name) or "").strip():
            return name
    return None


# ----------------------------------------------------------------------
# 等差数列
# ----------------------------------------------------------------------
def solve_arithmetic(
    target: str,
    a1: Optional[str] = "",
    an: Optional[str] = "",
    n: Optional[str] = "",
    d: Optional[str] = "",
) -> CalcResult:
    """target ("an" / "a1" / "n" / "d") を求める。"""
    if target not in ARITHMETIC_TARGETS:
        raise ValueError(f"unknown arithmetic target: {target!r}")

    raw = {"a1": a1, "an": an, "n": n, "d": d}
    required = ARITHMETIC_TARGETS[target]

    missing = _missing(raw, required)
    if missing is not None:
        return _fail(MISSING_INPUT, {missing: "Required"})

    values: Dict[str, float] = {}
    errors: Dict[str, str] = {}
    for name in required:
        value = _parse_number(raw[name])
        if value is None:
            errors[name] = "Invalid integer" if name == "n" else "Invalid number"
        else:
            values[name] = value
    if errors:
        return _fail(INVALID_INPUT, errors)

    if target == "an":
        return _solve_nth_term(values["a1"], values["n"], values["d"])
    if target == "a1":
        return _solve_first_term(values["an"], values["n"], values["d"])
    if target == "n":
        return _solve_term_count(values["an"], values["a1"], values["d"])
    return _solve_difference(values["an"], values["a1"], values["n"])


def nth_term(a1: float, n: int, d: float) -> float:
    return a1 + (n - 1) * d


def _is_positive_integer(value: float) -> bool:
    return float(value).is_integer() and value > 0


def _solve_nth_term(a1: float, n: float, d: float) -> CalcResult:
    if not _is_positive_integer(n):
        return _fail(INVALID_INPUT, {"n": "n must be a positive integer"})
    n_int = int(n)
    step = (n_int - 1) * d
    computed = nth_term(a1, n_int, d)
    return CalcResult(
        answer=f"a{n_int} = {format_number(computed)}",
        value=computed,
        steps=[
            f"Formula: a{n_int} = a₁ + (n - 1) × d",
            f"Substitute: a{n_int} = {format_number(a1)} + ({n_int} - 1) × {format_number(d)}",
            f"Compute (n - 1) × d = {n_int - 1} × {format_number(d)} = {format_number(step)}",
            f"Add: a{n_int} = {format_number(a1)} + {format_number(step)} = {format_number(computed)}",
        ],
    )


def _solve_first_term(an: float, n: float, d: float) -> CalcResult:
    if not _is_positive_integer(n):
        return _fail(INVALID_INPUT, {"n": "n must be a positive integer"})
    n_int = int(n)
    step = (n_int - 1) * d
    computed = an - step
    return CalcResult(
        answer=f"a₁ = {format_number(computed)}",
        value=computed,
        steps=[
            "Formula: a₁ = aₙ − (n − 1) × d",
            f"Substitute: a₁ = {format_number(an)} − ({n_int} - 1) × {format_number(d)}",
            f"Compute (n − 1) × d = {n_int - 1} × {format_number(d)} = {format_number(step)}",
            f"Subtract: a₁ = {format_number(an)} − {format_number(step)} = {format_number(computed)}",
        ],
    )


def _change_hint(delta: float, label: str) -> str:
    if abs(delta) < 0.0001:
        return f"no change suggested for {label}"
    direction = "decrease" if delta < 0 else "increase"
    return f"{direction} {label} by {format_number(abs(delta))}"


def _solve_term_count(an: float, a1: float, d: float) -> CalcResult:
    if d == 0:
        return _fail(INVALID_INPUT, {"d": "d cannot be zero"})

    ratio = (an - a1) / d
    n_val = ratio + 1
    if not math.isfinite(n_val):
        return _fail(INVALID_INPUT, {"n": "Invalid result"})

    if not _is_positive_integer(n_val):
        # n が整数になるように a₁ / aₙ / d をどれだけ動かせばよいかを提案する
        k = round(ratio)
        delta_a1 = (an - k * d) - a1
        delta_an = (a1 + k * d) - an
        if k != 0:
            sug_d = _change_hint((an - a1) / k - d, "d")
        else:
            sug_d = "no suggestion for d"
        return _fail(
            INVALID_INPUT,
            {
                "n": f"Computed n = {format_number(n_val)} (not an integer).",
                "a1": f"To make n integer: {_change_hint(delta_a1, 'a₁')}",
                "an": f"Or: {_change_hint(delta_an, 'aₙ')}",
                "d": f"Or: {sug_d}",
            },
        )

    n_int = int(round(n_val))
    return CalcResult(
        answer=f"n = {n_int}",
        value=float(n_int),
        steps=[
            "Formula: n = (aₙ − a₁) / d + 1",
            f"Substitute: n = ({format_number(an)} − {format_number(a1)}) / {format_number(d)} + 1",
            f"Compute: ({format_number(an)} − {format_number(a1)}) / {format_number(d)} = {format_number(ratio)}",
            f"Add 1: n = {format_number(ratio)} + 1 = {n_int}",
        ],
    )


def _solve_difference(an: float, a1: float, n: float) -> CalcResult:
    if not float(n).is_integer() or n <= 1:
        return _fail(INVALID_INPUT, {"n": "n must be an integer > 1"})
    n_int = int(n)
    computed = (an - a1) / (n_int - 1)
    return CalcResult(
        answer=f"d = {format_number(computed)}",
        value=computed,
        steps=[
            "Formula: d = (aₙ − a₁) / (n − 1)",
            f"Substitute: d = ({format_number(an)} − {format_number(a1)}) / ({n_int} - 1)",
            f"Compute: ({format_number(an)} − {format_number(a1)}) / ({n_int} - 1) = {format_number(computed)}",
        ],
    )


# ----------------------------------------------------------------------
# 等速直線運動
# ----------------------------------------------------------------------
def solve_motion(
    target: str,
    v: Optional[str] = "",
    dx: Optional[str] = "",
    dt: Optional[str] = "",
) -> CalcResult:
    """target ("v" / "dx" / "dt") を求める。"""
    if target not in MOTION_TARGETS:
        raise ValueError(f"unknown motion target: {target!r}")

    raw = {"v": v, "dx": dx, "dt": dt}
    required = MOTION_TARGETS[target]

    missing = _missing(raw, required)
    if missing is not None:
        return _fail(MISSING_INPUT, {missing: "Required"})

    values = {name: _parse_number(raw[name]) for name in required}
    bad = [name for name, value in values.items() if value is None]
    if bad:
        return _fail(INVALID_INPUT, {name: "Invalid number" for name in bad})

    if target == "v":
        if values["dt"] == 0:
            return _fail(INVALID_INPUT, {"dt": "Δt cannot be zero"})
        result = values["dx"] / values["dt"]
        text = f"v = Δx / Δt = {format_number(values['dx'])} / {format_number(values['dt'])} = {format_number(result)} m/s"
    elif target == "dx":
        result = values["v"] * values["dt"]
        text = f"Δx = v × Δt = {format_number(values['v'])} × {format_number(values['dt'])} = {format_number(result)} m"
    else:
        if values["v"] == 0:
            return _fail(INVALID_INPUT, {"v": "v cannot be zero"})
        result = values["dx"] / values["v"]
        text = f"Δt = Δx / v = {format_number(values['dx'])} / {format_number(values['v'])} = {format_number(result)} s"

    return CalcResult(answer=text, steps=[text], value=result)
