from streamlit.testing.v1 import AppTest

from eduquiz.ui import THEME_LABELS, THEMES, _generate_css


def _header_app():
    import streamlit as st

    from eduquiz import ui

    ui.apply_theme()
    result = ui.render_header("EduQuiz", None)
    st.session_state["theme_changed"] = result["theme_changed"]


def test_every_theme_has_a_label_and_css():
    assert set(THEME_LABELS) == set(THEMES)
    for theme in THEMES.values():
        assert theme["primary"] in _generate_css(theme)


def test_header_switches_to_dark_theme():
    at = AppTest.from_function(_header_app).run()
    assert not at.exception
    assert at.session_state["theme"] == "light"
    assert not at.session_state["theme_changed"]

    at.radio[0].set_value("dark").run()
    assert at.session_state["theme"] == "dark"
    assert at.session_state["theme_changed"]

    at.run()
    assert at.session_state["theme"] == "dark"
    assert not at.session_state["theme_changed"]
