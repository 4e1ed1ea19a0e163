"""
ui.py
======================

Streamlit ベースの UI コンポーネントをまとめたモジュール。

責務:
- 共通スタイル（テーマ別 CSS）
- ヘッダー（アプリ名・ログインユーザー・サインアウト）
- クイズ画面（タイマー・問題文・解答欄・進捗）
- 結果画面・ランキング表・レーダーチャート・計算機の結果表示

ここでは「見た目」と「ユーザー操作の入力」を扱い、
採点・保存・集計などのロジックは app.py から eduquiz の各モジュールを呼ぶ。

ボタン付きの部品は「何が押されたか」を dict で返す。
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from .calculators import CalcResult
from .leaderboard import RadarStats, format_percent, leaderboard_frame
from .models import AuthSession, LeaderboardRow
from .session import QuizSession

# ----------------------------------------------------------------------
#  テーマ定義
# ----------------------------------------------------------------------


THEMES: Dict[str, Dict[str, str]] = {
    "light": {
        "bg": "#ffffff",
        "text": "#1c1c1e",
        "surface": "#f2f2f7",
        "surface_alt": "#ffffff",
        "border": "#d1d1d6",
        "primary": "#007aff",
        "correct": "#34c759",
        "incorrect": "#ff3b30",
    },
    "dark": {
        "bg": "#000000",
        "text": "#f5f5f7",
        "surface": "#1c1c1e",
        "surface_alt": "#2c2c2e",
        "border": "#3a3a3c",
        "primary": "#0a84ff",
        "correct": "#30d158",
        "incorrect": "#ff453a",
    },
}

THEME_LABELS = {"light": "☀️ Light", "dark": "🌙 Dark"}


# ----------------------------------------------------------------------
#  CSS 生成
# ----------------------------------------------------------------------
def _generate_css(theme: Dict[str, str]) -> str:
    """テーマに応じたグローバル CSS を生成する。"""

    return f"""
    <style>
    .eq-header {{
        display: flex;
        justify-content: space-between;
        align-items: center;
        gap: 0.5rem;
        margin-bottom: 0.5rem;
    }}

    .eq-app-title {{
        font-weight: 600;
        font-size: 1.15rem;
    }}

    .eq-user-badge {{
        padding: 0.1rem 0.5rem;
        border-radius: 999px;
        border: 1px solid {theme['border']};
        font-size: 0.75rem;
        white-space: nowrap;
    }}

    .eq-tags {{
        display: flex;
        flex-wrap: wrap;
        gap: 0.25rem;
        font-size: 0.8rem;
    }}

    .eq-tag {{
        padding: 0.1rem 0.5rem;
        border-radius: 999px;
        background: {theme['surface']};
        border: 1px solid {theme['border']};
    }}

    /* タイマー */
    .eq-timer {{
        display: flex;
        align-items: center;
        gap: 0.5rem;
        font-size: 0.85rem;
        margin-top: 0.25rem;
    }}

    .eq-timer-bar {{
        flex: 1;
        height: 8px;
        background: {theme['border']}55;
        border-radius: 4px;
        overflow: hidden;
    }}

    .eq-timer-fill {{
        height: 8px;
        background: {theme['primary']};
        border-radius: 4px;
    }}

    .eq-timer-low {{
        background: {theme['incorrect']};
    }}

    .eq-question-box {{
        background: {theme['surface_alt']};
        padding: 1rem;
        border-radius: 12px;
        border: 1px solid {theme['border']};
        font-size: 1.1rem;
        line-height: 1.6;
        margin-top: 0.5rem;
        margin-bottom: 0.75rem;
    }}

    .eq-result-correct {{
        border-left: 4px solid {theme['correct']};
        padding-left: 0.6rem;
        margin-bottom: 0.6rem;
    }}

    .eq-result-incorrect {{
        border-left: 4px solid {theme['incorrect']};
        padding-left: 0.6rem;
        margin-bottom: 0.6rem;
    }}

    .eq-steps {{
        padding: 0.9rem;
        border-radius: 10px;
        background: {theme['surface_alt']};
        border: 1px solid {theme['border']};
        font-size: 0.95rem;
        line-height: 1.6;
    }}

    .eq-footer {{
        margin-top: 0.75rem;
        font-size: 0.8rem;
        color: {theme['text']}aa;
        text-align: center;
    }}
    </style>
    """


def _ensure_theme() -> str:
    """セッションに theme キーを用意し、現在のテーマキーを返す。"""
    theme_key = st.session_state.get("theme", "light")
    if theme_key not in THEMES:
        theme_key = "light"
    st.session_state["theme"] = theme_key
    return theme_key


def apply_theme() -> Dict[str, str]:
    theme = THEMES[_ensure_theme()]
    st.markdown(_generate_css(theme), unsafe_allow_html=True)
    return theme


def _render_theme_selector(theme_key: str) -> str:
    """ヘッダー右側にテーマ切替を表示し、選択されたテーマキーを返す。"""
    options = list(THEMES)
    idx = options.index(theme_key) if theme_key in options else 0
    selected = st.radio(
        "Theme",
        options,
        index=idx,
        horizontal=True,
        label_visibility="collapsed",
        format_func=lambda k: THEME_LABELS.get(k, k),
    )
    st.session_state["theme"] = selected
    return selected


# ----------------------------------------------------------------------
#  ヘッダー
# ----------------------------------------------------------------------
def render_header(app_name: str, auth: Optional[AuthSession], subtitle: str = "") -> Dict[str, Any]:
    """
    戻り値:
        {"clicked_logout": bool, "theme_changed": bool}
    """
    clicked_logout = False
    current_theme = _ensure_theme()
    col_left, col_right = st.columns([3, 1])
    with col_left:
        st.markdown(
            f"<div class='eq-header'><div class='eq-app-title'>{app_name}</div></div>",
            unsafe_allow_html=True,
        )
        if subtitle:
            st.caption(subtitle)
    with col_right:
        selected_theme = _render_theme_selector(current_theme)
        if auth is not None:
            st.markdown(
                f"<div style='text-align:right;'><span class='eq-user-badge'>{auth.display_name}</span></div>",
                unsafe_allow_html=True,
            )
            if st.button("Logout", key="eq_logout", use_container_width=True):
                clicked_logout = True
    return {"clicked_logout": clicked_logout, "theme_changed": selected_theme != current_theme}


def render_nav(options: Dict[str, str], current: str, key_prefix: str) -> Optional[str]:
    """ダッシュボード内のサブ画面切替。押されたキーを返す。"""
    cols = st.columns(len(options))
    clicked: Optional[str] = None
    for col, (key, label) in zip(cols, options.items()):
        with col:
            if st.button(
                label,
                key=f"{key_prefix}_{key}",
                use_container_width=True,
                type="primary" if key == current else "secondary",
            ):
                clicked = key
    return clicked


# ----------------------------------------------------------------------
#  クイズ画面
# ----------------------------------------------------------------------
def _render_timer(remaining: int, total: int) -> None:
    ratio = max(min(remaining / float(total), 1.0), 0.0) if total else 0.0
    percent = int(ratio * 100)
    low = " eq-timer-low" if remaining <= 10 else ""
    st.markdown(
        "<div class='eq-timer'>"
        f"<div>⏱ {remaining}s</div>"
        "<div class='eq-timer-bar'>"
        f"<div class='eq-timer-fill{low}' style='width:{percent}%'></div>"
        "</div>"
        "</div>",
        unsafe_allow_html=True,
    )


def answer_key(session: QuizSession) -> str:
    """解答欄の widget key。問題ごとに変えて、次の問題で入力が残らないようにする。"""
    return f"eq_answer_{session.subject}_{session.category}_{session.index}"


def render_quiz_page(session: QuizSession, warning: Optional[str] = None) -> Dict[str, Any]:
    """
    進行中の問題を描画する。

    戻り値:
        {
          "answer": str,          # 解答欄の現在値
          "clicked_next": bool,
          "clicked_back": bool,   # カテゴリ選択に戻る（セッション破棄）
        }
    """
    item = session.current_item
    if item is None:
        return {"answer": "", "clicked_next": False, "clicked_back": False}

    tags_html = [
        f"<span class='eq-tag'>{session.category}</span>",
        f"<span class='eq-tag'>Level {item.level}</span>",
        f"<span class='eq-tag'>{session.index + 1} / {session.total}</span>",
    ]
    st.markdown("<div class='eq-tags'>" + "".join(tags_html) + "</div>", unsafe_allow_html=True)
    st.progress(session.progress_ratio())
    _render_timer(session.remaining(), session.timer.duration)

    st.markdown(f"<div class='eq-question-box'>{item.question}</div>", unsafe_allow_html=True)

    answer = st.text_input("Your answer", key=answer_key(session))
    if warning:
        st.warning(warning)

    col_back, col_next = st.columns(2)
    with col_back:
        clicked_back = st.button("◀ Back to categories", key="eq_quiz_back", use_container_width=True)
    with col_next:
        label = "Finish ▶" if session.index == session.total - 1 else "Next ▶"
        clicked_next = st.button(label, key="eq_quiz_next", type="primary", use_container_width=True)

    return {"answer": answer, "clicked_next": clicked_next, "clicked_back": clicked_back}


def render_summary(session: QuizSession) -> Dict[str, Any]:
    """
    戻り値:
        {"clicked_retry": bool, "clicked_back": bool}
    """
    st.markdown(f"### {session.summary_message()}")
    st.metric("Score", f"{session.score} / {session.total}")

    for i, a in enumerate(session.answers, start=1):
        css = "eq-result-correct" if a.is_correct else "eq-result-incorrect"
        mark = "✅" if a.is_correct else "❌"
        given = a.given_answer or "(no answer)"
        timeout = " ⏰" if a.timed_out else ""
        st.markdown(
            f"<div class='{css}'>"
            f"<b>{mark} Q{i}.</b> {a.question}<br>"
            f"Your answer: {given}{timeout}<br>"
            f"Correct answer: <b>{a.correct_answer}</b>"
            "</div>",
            unsafe_allow_html=True,
        )
        if a.solution:
            with st.expander(f"Solution Q{i}"):
                st.markdown(a.solution)

    col_back, col_retry = st.columns(2)
    with col_back:
        clicked_back = st.button("◀ Back to categories", key="eq_summary_back", use_container_width=True)
    with col_retry:
        clicked_retry = st.button("🔁 Try again", key="eq_summary_retry", use_container_width=True)
    return {"clicked_retry": clicked_retry, "clicked_back": clicked_back}


# ----------------------------------------------------------------------
#  ランキング・レーダー
# ----------------------------------------------------------------------
def render_leaderboard(rows: List[LeaderboardRow], title: str) -> None:
    st.markdown(f"#### {title}")
    if not rows:
        st.info("No scores yet.")
        return
    st.dataframe(leaderboard_frame(rows), hide_index=True, use_container_width=True)


def render_radar(stats: RadarStats, title: str) -> None:
    axes = stats.as_axes()
    df = pd.DataFrame({"axis": list(axes.keys()), "value": list(axes.values())})
    fig = px.line_polar(df, r="value", theta="axis", line_close=True, range_r=[0, 100], title=title)
    fig.update_traces(fill="toself")
    st.plotly_chart(fig, use_container_width=True)

    cols = st.columns(len(axes))
    for col, (label, value) in zip(cols, axes.items()):
        col.metric(label, format_percent(value))


def render_weekly_activity(rows: List[Dict[str, Any]]) -> None:
    df = pd.DataFrame(rows).melt(id_vars="day", var_name="subject", value_name="quizzes")
    fig = px.line(df, x="day", y="quizzes", color="subject", markers=True)
    st.plotly_chart(fig, use_container_width=True)


# ----------------------------------------------------------------------
#  計算機
# ----------------------------------------------------------------------
def render_calc_result(result: Optional[CalcResult]) -> None:
    if result is None:
        return
    if not result.ok:
        st.warning(result.warning)
        for name, message in result.field_errors.items():
            st.caption(f"**{name}**: {message}")
        return
    st.success(result.answer)
    if len(result.steps) > 1:
        st.markdown(
            "<div class='eq-steps'>" + "<br>".join(result.steps) + "</div>",
            unsafe_allow_html=True,
        )


def render_footer(app_name: str) -> None:
    st.markdown(f"<div class='eq-footer'>© {app_name}</div>", unsafe_allow_html=True)
