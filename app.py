"""
app.py
======================

EduQuiz（等差数列 / 等速直線運動 の学習クイズ）Streamlit エントリーポイント。

特徴:
- ログイン / 新規登録（Supabase Auth）、ゲストとしての利用
- 教科ごとのダッシュボード（学習・練習計算機・クイズ・ランキング・レーダー）
- 1 問 60 秒のカウントダウン（streamlit-autorefresh で 1 秒ごとに再実行）
- 管理者ダッシュボード（問題の追加・編集・削除、集計、Excel エクスポート）

ページは st.session_state["page"] で切り替える:
    login / register / home / arithmetic / motion / admin
各ダッシュボードのサブ画面は st.session_state["<page>_screen"]。

前提:
- 環境変数（または .env）に SUPABASE_URL / SUPABASE_KEY
- GEMINI_API_KEY があれば学習画面で練習問題の自動生成が使える
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Optional

import streamlit as st
from streamlit_autorefresh import st_autorefresh

from eduquiz.admin import (
    QuizAdmin,
    add_accepted_answer,
    export_scores_workbook,
    recent_logins,
    user_counts,
    week_start_for,
    weekly_activity,
)
from eduquiz.auth import RegistrationForm, register, sign_in, sign_out
from eduquiz.backend import Backend, create_backend
from eduquiz.calculators import ARITHMETIC_TARGETS, MOTION_TARGETS, solve_arithmetic, solve_motion
from eduquiz.catalog import QuizCatalog
from eduquiz.config import ARITHMETIC, CATEGORIES, MOTION, SUBJECTS, AppConfig, load_app_config, setup_logging
from eduquiz.errors import AuthError, AuthRequiredError, BackendError, EmptyCategoryError, ValidationError
from eduquiz.generator import QuizGenerator
from eduquiz.leaderboard import fetch_leaderboard, radar_for_subject, radar_for_user
from eduquiz.models import AuthSession
from eduquiz.scores import ScoreRecorder
from eduquiz.session import QuizSession
from eduquiz import ui

logger = logging.getLogger("eduquiz.app")

SUBJECT_PAGES = {"arithmetic": ARITHMETIC, "motion": MOTION}

SUBJECT_SCREENS = {
    "home": "🏠 Home",
    "module": "📘 Module",
    "practice": "🧮 Practice",
    "quiz": "📝 Quiz",
    "leaderboard": "🏆 Leaderboard",
    "radar": "📊 Radar",
}

ADMIN_SCREENS = {
    "home": "🏠 Home",
    "add_quiz": "➕ Add Quiz",
    "arithmetic_quizzes": "🔢 Arithmetic",
    "motion_quizzes": "🚗 Motion",
    "leaderboard": "🏆 Leaderboard",
    "radar": "📊 Radar",
}

MODULE_TEXT = {
    ARITHMETIC: """
An **arithmetic sequence** is a list of numbers where each term is found by adding
the same value, the **common difference** `d`, to the previous term.

- n-th term: `aₙ = a₁ + (n − 1)d`
- first term: `a₁ = aₙ − (n − 1)d`
- number of terms: `n = (aₙ − a₁) / d + 1`
- common difference: `d = (aₙ − a₁) / (n − 1)`

Example: 3, 7, 11, 15, … has `a₁ = 3` and `d = 4`, so `a₁₀ = 3 + 9 × 4 = 39`.
""",
    MOTION: """
An object in **uniform motion** travels in a straight line at a constant velocity.

- velocity: `v = Δx / Δt` (m/s)
- displacement: `Δx = v × Δt` (m)
- time: `Δt = Δx / v` (s)

Example: a cyclist covers 150 m in 30 s, so `v = 150 / 30 = 5 m/s`.
""",
}

ARITHMETIC_LABELS = {"an": "aₙ (n-th term)", "a1": "a₁ (first term)", "n": "n (number of terms)", "d": "d (common difference)"}
MOTION_LABELS = {"v": "v (velocity, m/s)", "dx": "Δx (displacement, m)", "dt": "Δt (time, s)"}


# ----------------------------------------------------------------------
#  設定 / Backend / 認証 のラッパー
# ----------------------------------------------------------------------
def get_config() -> AppConfig:
    if "app_config" not in st.session_state:
        cfg = load_app_config()
        setup_logging(cfg.log_level)
        st.session_state["app_config"] = cfg
    return st.session_state["app_config"]  # type: ignore[return-value]


def get_backend() -> Backend:
    """Backend をセッションに保持して返す。未設定ならエラー表示して停止。"""
    if "backend" not in st.session_state:
        try:
            st.session_state["backend"] = create_backend(get_config())
        except BackendError as e:
            st.error(f"Backend is not configured: {e.message}")
            st.stop()
    return st.session_state["backend"]  # type: ignore[return-value]


def get_auth() -> Optional[AuthSession]:
    return st.session_state.get("auth")


def get_catalog(subject: str) -> QuizCatalog:
    key = f"catalog_{subject}"
    if key not in st.session_state:
        st.session_state[key] = QuizCatalog(get_backend(), subject)
    return st.session_state[key]  # type: ignore[return-value]


def set_page(page: str, screen: Optional[str] = None) -> None:
    st.session_state["page"] = page
    if screen is not None:
        st.session_state[f"{page}_screen"] = screen


def get_page() -> str:
    return st.session_state.get("page", "login")


def get_screen(page: str) -> str:
    return st.session_state.get(f"{page}_screen", "home")


def clear_quiz() -> None:
    """進行中のクイズを破棄する（途中スコアは保存しない）。"""
    for key in ("quiz_session", "quiz_warning", "quiz_notice"):
        st.session_state.pop(key, None)


def render_page_header(subtitle: str = "") -> None:
    cfg = get_config()
    auth = get_auth()
    result = ui.render_header(cfg.app_name, auth, subtitle)
    if result["clicked_logout"]:
        sign_out(get_backend(), auth)
        st.session_state.pop("auth", None)
        clear_quiz()
        set_page("login")
        st.rerun()
    if result["theme_changed"]:
        # CSS は main() の先頭で注入済みなので、新しいテーマで描き直す
        st.rerun()


# ----------------------------------------------------------------------
#  ページ: ログイン / 新規登録
# ----------------------------------------------------------------------
def render_login_page() -> None:
    cfg = get_config()
    st.markdown(f"## 🔐 {cfg.app_name}")

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login", use_container_width=True)

    if submitted:
        try:
            auth = sign_in(get_backend(), email, password)
        except AuthError as e:
            st.error(e.message)
        else:
            st.session_state["auth"] = auth
            set_page("admin" if auth.is_admin else "home", "home")
            st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📝 Create an account", use_container_width=True):
            set_page("register")
            st.rerun()
    with col2:
        if st.button("👤 Continue as guest", use_container_width=True):
            st.session_state.pop("auth", None)
            set_page("home")
            st.rerun()


def render_register_page() -> None:
    st.markdown("## 📝 Register")

    with st.form("register_form"):
        col1, col2 = st.columns(2)
        firstname = col1.text_input("First name")
        lastname = col2.text_input("Last name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        confirm = st.text_input("Confirm password", type="password")
        agreed = st.checkbox("I agree to the terms and conditions")
        submitted = st.form_submit_button("Register", use_container_width=True)

    if submitted:
        form = RegistrationForm(firstname, lastname, email, password, confirm, agreed)
        try:
            created = register(get_backend(), form)
        except AuthError as e:
            st.error(e.message)
        else:
            if created:
                st.success("Registration successful! You can now log in.")
            else:
                st.success("Please check your email to confirm your account, then log in.")

    if st.button("◀ Back to login", use_container_width=True):
        set_page("login")
        st.rerun()


# ----------------------------------------------------------------------
#  ページ: ホーム
# ----------------------------------------------------------------------
def render_home_page() -> None:
    render_page_header("Choose a subject")
    auth = get_auth()
    name = auth.firstname if auth is not None and auth.firstname else "there"
    st.markdown(f"## 👋 Welcome, {name}!")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("🔢 Arithmetic Sequence", use_container_width=True):
            clear_quiz()
            set_page("arithmetic", "home")
            st.rerun()
    with col2:
        if st.button("🚗 Uniform Motion in Physics", use_container_width=True):
            clear_quiz()
            set_page("motion", "home")
            st.rerun()

    if auth is None:
        st.info("You are playing as a guest. Log in to save your scores.")


# ----------------------------------------------------------------------
#  ページ: 教科ダッシュボード
# ----------------------------------------------------------------------
def render_subject_dashboard(page: str) -> None:
    subject = SUBJECT_PAGES[page]
    render_page_header(subject)

    screen = get_screen(page)
    clicked = ui.render_nav(SUBJECT_SCREENS, screen, key_prefix=f"nav_{page}")
    if clicked is not None and clicked != screen:
        clear_quiz()
        set_page(page, clicked)
        st.rerun()

    st.write("---")
    if screen == "module":
        render_module_screen(subject)
    elif screen == "practice":
        render_practice_screen(subject)
    elif screen == "quiz":
        render_quiz_screen(subject)
    elif screen == "leaderboard":
        render_leaderboard_screen(subject)
    elif screen == "radar":
        render_radar_screen(subject)
    else:
        render_subject_home(page, subject)


def render_subject_home(page: str, subject: str) -> None:
    st.markdown(f"## {subject}")
    counts = get_catalog(subject).count_by_category()
    cols = st.columns(len(CATEGORIES))
    for col, category in zip(cols, CATEGORIES):
        col.metric(category, f"{counts.get(category, 0)} items")

    if st.button("📝 Start a quiz", use_container_width=True):
        set_page(page, "quiz")
        st.rerun()
    if st.button("🏠 Back to subjects", use_container_width=True):
        set_page("home")
        st.rerun()


def render_module_screen(subject: str) -> None:
    st.markdown(f"## 📘 {subject}")
    st.markdown(MODULE_TEXT[subject])

    cfg = get_config()
    if not cfg.has_gemini:
        return

    st.write("---")
    st.markdown("### 🤖 Extra practice")
    topic = st.text_input("Topic", value=subject, key=f"gen_topic_{subject}")
    if st.button("Generate practice questions", key=f"gen_btn_{subject}"):
        generator = QuizGenerator(cfg.gemini_api_key, cfg.gemini_model)
        with st.spinner("Generating..."):
            st.session_state[f"gen_items_{subject}"] = generator.generate(topic)

    items = st.session_state.get(f"gen_items_{subject}")
    if items == []:
        st.info("Could not generate questions right now. Please try again later.")
    for i, item in enumerate(items or [], start=1):
        st.markdown(f"**Q{i}. {item['question']}**")
        choice = st.radio(
            f"Q{i}",
            item["choices"],
            index=None,
            key=f"gen_choice_{subject}_{i}",
            label_visibility="collapsed",
        )
        if choice is not None:
            if choice.strip().lower() == item["answer"].strip().lower():
                st.success("Correct!")
            else:
                st.error(f"Answer: {item['answer']}")


def render_practice_screen(subject: str) -> None:
    st.markdown("## 🧮 Formula practice")
    result_key = f"calc_result_{subject}"

    if subject == ARITHMETIC:
        target = st.selectbox(
            "Find",
            list(ARITHMETIC_TARGETS),
            format_func=lambda k: ARITHMETIC_LABELS[k],
            key="calc_arith_target",
        )
        inputs: Dict[str, str] = {}
        cols = st.columns(len(ARITHMETIC_TARGETS[target]))
        for col, name in zip(cols, ARITHMETIC_TARGETS[target]):
            inputs[name] = col.text_input(ARITHMETIC_LABELS[name], key=f"calc_arith_{name}")
        if st.button("Calculate", key="calc_arith_btn", type="primary"):
            st.session_state[result_key] = solve_arithmetic(target, **inputs)
    else:
        target = st.selectbox(
            "Find",
            list(MOTION_TARGETS),
            format_func=lambda k: MOTION_LABELS[k],
            key="calc_motion_target",
        )
        inputs = {}
        cols = st.columns(len(MOTION_TARGETS[target]))
        for col, name in zip(cols, MOTION_TARGETS[target]):
            inputs[name] = col.text_input(MOTION_LABELS[name], key=f"calc_motion_{name}")
        if st.button("Calculate", key="calc_motion_btn", type="primary"):
            st.session_state[result_key] = solve_motion(target, **inputs)

    ui.render_calc_result(st.session_state.get(result_key))


# ----------------------------------------------------------------------
#  クイズ
# ----------------------------------------------------------------------
def start_quiz(subject: str, category: str) -> None:
    cfg = get_config()
    catalog = get_catalog(subject)
    # 選択時点の問題で固定する
    catalog.load(force_reload=True)
    items = catalog.items_for_category(category)
    clear_quiz()
    st.session_state["quiz_session"] = QuizSession.start(
        subject, category, items, question_seconds=cfg.question_seconds
    )
    logger.info("Quiz started: %s / %s (%d items)", subject, category, len(items))


def save_finished_quiz(session: QuizSession) -> None:
    cfg = get_config()
    recorder = ScoreRecorder(get_backend(), cfg.on_missing_auth)
    try:
        recorder.record(session, get_auth())
    except AuthRequiredError as e:
        st.session_state["quiz_notice"] = ("warning", e.message)
    except BackendError:
        st.session_state["quiz_notice"] = ("error", "Could not save your score. Please try again later.")


def render_quiz_screen(subject: str) -> None:
    session: Optional[QuizSession] = st.session_state.get("quiz_session")

    if session is None or session.subject != subject:
        st.markdown("## 📝 Choose a category")
        for category in CATEGORIES:
            if st.button(category, key=f"quiz_cat_{category}", use_container_width=True):
                try:
                    start_quiz(subject, category)
                except EmptyCategoryError:
                    st.info(f"No quizzes in {category} yet. Please check back later.")
                else:
                    st.rerun()
        return

    # 直前の再実行で表示していた問題。この回のボタン押下はこの問題に対するもの
    shown_index = session.index
    if not session.finished:
        # 1 秒ごとに再実行してカウントダウンを進める
        st_autorefresh(interval=1000, key="quiz_tick")
        draft = st.session_state.get(ui.answer_key(session), "")
        if session.poll(draft) is not None:
            st.session_state.pop("quiz_warning", None)

    if session.finished:
        if not session.saved:
            save_finished_quiz(session)
        notice = st.session_state.get("quiz_notice")
        if notice is not None:
            level, message = notice
            getattr(st, level)(message)
        result = ui.render_summary(session)
        if result["clicked_retry"]:
            try:
                start_quiz(subject, session.category)
            except EmptyCategoryError:
                clear_quiz()
            st.rerun()
        if result["clicked_back"]:
            clear_quiz()
            st.rerun()
        return

    result = ui.render_quiz_page(session, warning=st.session_state.get("quiz_warning"))
    if result["clicked_back"]:
        clear_quiz()
        st.rerun()
    if result["clicked_next"]:
        try:
            session.submit(result["answer"], shown_index=shown_index)
        except ValidationError as e:
            st.session_state["quiz_warning"] = e.message
        else:
            st.session_state.pop("quiz_warning", None)
        st.rerun()


def render_leaderboard_screen(subject: str) -> None:
    st.markdown(f"## 🏆 {subject} leaderboard")
    backend = get_backend()
    for category in CATEGORIES:
        ui.render_leaderboard(fetch_leaderboard(backend, subject, category), category)


def render_radar_screen(subject: str) -> None:
    cfg = get_config()
    auth = get_auth()
    if auth is None:
        st.info("Log in to see your performance radar.")
    stats = radar_for_user(
        get_backend(), auth, subject,
        max_score=cfg.max_score, max_time=cfg.max_time, limit=cfg.radar_history_limit,
    )
    ui.render_radar(stats, f"{subject} performance")


# ----------------------------------------------------------------------
#  ページ: 管理者
# ----------------------------------------------------------------------
def render_admin_dashboard() -> None:
    auth = get_auth()
    if auth is None or not auth.is_admin:
        set_page("home")
        st.rerun()

    render_page_header("Admin dashboard")
    screen = get_screen("admin")
    clicked = ui.render_nav(ADMIN_SCREENS, screen, key_prefix="nav_admin")
    if clicked is not None and clicked != screen:
        set_page("admin", clicked)
        st.rerun()

    st.write("---")
    if screen == "add_quiz":
        render_admin_add_quiz()
    elif screen == "arithmetic_quizzes":
        render_admin_quiz_list(ARITHMETIC)
    elif screen == "motion_quizzes":
        render_admin_quiz_list(MOTION)
    elif screen == "leaderboard":
        render_admin_leaderboard()
    elif screen == "radar":
        render_admin_radar()
    else:
        render_admin_home()


def render_admin_home() -> None:
    backend = get_backend()
    counts = user_counts(backend)
    col1, col2, col3 = st.columns(3)
    col1.metric("Admins", counts["admin"])
    col2.metric("Students", counts["user"])
    col3.metric("Total users", counts["total"])

    st.markdown("### 🕑 Recent logins")
    page = st.session_state.get("admin_login_page", 0)
    rows, pages = recent_logins(backend, page)
    for row in rows:
        st.write(f"- **{row.get('email', '')}** ({row.get('role', '')}) · {row.get('login_at', '')}")
    col_prev, col_info, col_next = st.columns([1, 2, 1])
    if col_prev.button("◀", key="login_prev", disabled=page <= 0):
        st.session_state["admin_login_page"] = page - 1
        st.rerun()
    col_info.caption(f"Page {min(page, pages - 1) + 1} / {pages}")
    if col_next.button("▶", key="login_next", disabled=page >= pages - 1):
        st.session_state["admin_login_page"] = page + 1
        st.rerun()

    st.markdown("### 📈 Weekly quiz activity")
    week_start = st.session_state.get("admin_week_start") or week_start_for(date.today())
    col_prev, col_info, col_next = st.columns([1, 2, 1])
    if col_prev.button("◀ Previous week", key="week_prev"):
        st.session_state["admin_week_start"] = week_start - timedelta(days=7)
        st.rerun()
    col_info.caption(f"{week_start:%b %d, %Y} – {week_start + timedelta(days=6):%b %d, %Y}")
    if col_next.button("Next week ▶", key="week_next"):
        st.session_state["admin_week_start"] = week_start + timedelta(days=7)
        st.rerun()
    ui.render_weekly_activity(weekly_activity(backend, week_start))


def render_admin_add_quiz() -> None:
    st.markdown("## ➕ Add quiz")
    admin = QuizAdmin(get_backend())

    subject = st.selectbox("Subject", SUBJECTS, key="add_subject")
    category = st.selectbox("Category", CATEGORIES, key="add_category")
    level = st.number_input("Level", min_value=1, step=1, value=1, key="add_level")
    question = st.text_area("Question", key="add_question")
    solution = st.text_area("Solution (optional)", key="add_solution")
    answer = st.text_input("Answer", key="add_answer")

    accepted = st.session_state.setdefault("add_accepted", [])
    col_input, col_btn = st.columns([3, 1])
    extra = col_input.text_input("Accepted answer", key="add_accepted_input")
    if col_btn.button("Add", key="add_accepted_btn"):
        st.session_state["add_accepted"] = add_accepted_answer(accepted, extra)
        st.rerun()
    for i, a in enumerate(accepted):
        col_text, col_remove = st.columns([3, 1])
        col_text.write(f"- {a}")
        if col_remove.button("Remove", key=f"add_accepted_rm_{i}"):
            st.session_state["add_accepted"] = accepted[:i] + accepted[i + 1:]
            st.rerun()

    if st.button("💾 Save quiz", type="primary", use_container_width=True):
        try:
            admin.create(
                subject=subject,
                category=category,
                level=level,
                question=question,
                answer=answer,
                solution=solution,
                accepted_answers=accepted,
            )
        except ValidationError as e:
            st.error(e.message)
        except BackendError:
            st.error("Could not save the quiz. Please try again.")
        else:
            st.session_state["add_accepted"] = []
            st.success("Quiz added successfully!")


def render_admin_quiz_list(subject: str) -> None:
    st.markdown(f"## {subject} quizzes")
    admin = QuizAdmin(get_backend())
    items = admin.list_quizzes(subject)
    if not items:
        st.info("No quizzes yet.")
        return

    for item in items:
        with st.expander(f"[{item.category}] Level {item.level}: {item.question[:60]}"):
            with st.form(f"edit_{item.id}"):
                col_cat, col_level = st.columns(2)
                category = col_cat.selectbox(
                    "Category",
                    CATEGORIES,
                    index=CATEGORIES.index(item.category) if item.category in CATEGORIES else 0,
                )
                level = col_level.number_input("Level", min_value=1, step=1, value=max(int(item.level), 1))
                question = st.text_area("Question", value=item.question)
                answer = st.text_input("Answer", value=item.answer)
                solution = st.text_area("Solution", value=item.solution)
                accepted_text = st.text_area(
                    "Accepted answers (one per line)", value="\n".join(item.accepted_answers)
                )
                saved = st.form_submit_button("💾 Save changes")
            if saved:
                try:
                    admin.update(item.id, category, level, question, answer, solution, accepted_text)
                except ValidationError as e:
                    st.error(e.message)
                except BackendError:
                    st.error("Could not update the quiz.")
                else:
                    st.success("Quiz updated.")
                    st.rerun()

            if st.button("🗑 Delete", key=f"delete_{item.id}"):
                try:
                    admin.delete(item.id)
                except BackendError:
                    st.error("Could not delete the quiz.")
                else:
                    st.rerun()


def render_admin_leaderboard() -> None:
    backend = get_backend()
    for subject in SUBJECTS:
        st.markdown(f"## 🏆 {subject}")
        for category in CATEGORIES:
            ui.render_leaderboard(fetch_leaderboard(backend, subject, category), category)


def render_admin_radar() -> None:
    cfg = get_config()
    backend = get_backend()
    for subject in SUBJECTS:
        stats = radar_for_subject(backend, subject, max_score=cfg.max_score, max_time=cfg.max_time)
        ui.render_radar(stats, f"{subject} (all students)")

    st.write("---")
    if st.button("📥 Prepare Excel export", use_container_width=True):
        exported = export_scores_workbook(backend)
        if exported is None:
            st.info("There are no scores to export yet.")
        else:
            output, filename = exported
            st.download_button(
                "Download " + filename,
                data=output.getvalue(),
                file_name=filename,
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                use_container_width=True,
            )


# ----------------------------------------------------------------------
#  メイン
# ----------------------------------------------------------------------
def main() -> None:
    cfg = get_config()
    st.set_page_config(
        page_title=cfg.app_name,
        page_icon="🧮",
        layout="centered",
    )
    ui.apply_theme()

    page = get_page()

    if page == "login":
        render_login_page()
    elif page == "register":
        render_register_page()
    elif page in SUBJECT_PAGES:
        render_subject_dashboard(page)
    elif page == "admin":
        render_admin_dashboard()
    else:
        set_page("home")
        render_home_page()

    ui.render_footer(cfg.app_name)


if __name__ == "__main__":
    main()
