import pytest

from eduquiz.errors import EmptyCategoryError, ValidationError
from eduquiz.session import BLANK_ANSWER_WARNING, DEFAULT_MESSAGE, QuestionTimer, QuizSession


def _session(quiz_factory, clock, answers=("7", "12", "x")):
    # level をわざと逆順に渡す
    items = [quiz_factory(f"q{i}", level, ans) for i, (level, ans) in
             enumerate(zip(range(len(answers), 0, -1), reversed(answers)), start=1)]
    return QuizSession.start("Arithmetic Sequence", "Solving", items, clock=clock)


def test_items_are_sorted_by_level(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    assert [q.level for q in session.items] == [1, 2, 3]
    assert session.current_item.answer == "7"
    assert session.first_quiz_id == session.items[0].id


def test_correct_timeout_wrong_scores_one(quiz_factory, clock):
    session = _session(quiz_factory, clock)

    session.submit(" 7 ")
    clock.advance(60)
    record = session.poll("")
    assert record is not None and record.timed_out
    session.submit("wrong")

    assert session.finished
    assert session.score == 1
    assert [a.is_correct for a in session.answers] == [True, False, False]


def test_answers_are_compared_case_insensitively(quiz_factory, clock):
    session = QuizSession.start("Uniform Motion in Physics", "Solving",
                                [quiz_factory("q1", 1, "Ten")], clock=clock)
    record = session.submit("  tEN ")
    assert record.is_correct
    assert session.score == 1


def test_blank_submit_is_rejected_without_advancing(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    with pytest.raises(ValidationError) as exc:
        session.submit("   ")
    assert exc.value.message == BLANK_ANSWER_WARNING
    assert session.index == 0
    assert session.answers == []


def test_timer_resets_on_each_new_item(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    clock.advance(42)
    assert session.remaining() == 18

    session.submit("7")
    assert session.remaining() == 60


def test_expiry_auto_advances_exactly_once(quiz_factory, clock):
    session = _session(quiz_factory, clock)

    clock.advance(59.5)
    assert session.poll("7") is None
    assert session.remaining() == 1

    clock.advance(0.5)
    first = session.poll("7")
    assert first is not None and first.is_correct
    assert session.index == 1

    # 同じ再実行で 2 回目のポーリングが来ても進まない
    assert session.poll("") is None
    assert session.index == 1
    assert len(session.answers) == 1


def test_next_click_after_timeout_in_same_rerun_is_ignored(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    shown = session.index

    clock.advance(60)
    assert session.poll("7") is not None
    # 新しい問題の解答欄は空。押下は前の問題へのものなので警告も出さない
    assert session.submit("", shown_index=shown) is None
    assert session.index == 1
    assert len(session.answers) == 1

    record = session.submit("12", shown_index=session.index)
    assert record is not None and record.is_correct
    assert session.index == 2


def test_blank_submit_for_current_item_still_warns(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    with pytest.raises(ValidationError):
        session.submit(" ", shown_index=session.index)
    assert session.index == 0


def test_timeout_on_last_item_finishes(quiz_factory, clock):
    session = QuizSession.start("Arithmetic Sequence", "Solving",
                                [quiz_factory("q1", 1, "3")], clock=clock)
    clock.advance(61)
    session.poll(None)
    assert session.finished
    assert session.score == 0
    assert session.remaining() == 0
    assert session.poll("3") is None


def test_score_never_exceeds_item_count(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    for answer in ("7", "12", "x"):
        session.submit(answer)
    assert session.score == session.total == 3
    assert session.progress_ratio() == 1.0


def test_elapsed_time_stops_at_finish(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    clock.advance(10)
    session.submit("7")
    clock.advance(20)
    session.submit("12")
    clock.advance(5)
    session.submit("x")
    clock.advance(100)
    assert session.elapsed_seconds() == 35


def test_submit_after_finish_raises(quiz_factory, clock):
    session = QuizSession.start("Arithmetic Sequence", "Solving",
                                [quiz_factory("q1", 1, "3")], clock=clock)
    session.submit("3")
    with pytest.raises(RuntimeError):
        session.submit("3")


def test_empty_category_cannot_start(clock):
    with pytest.raises(EmptyCategoryError) as exc:
        QuizSession.start("Arithmetic Sequence", "Problem Solving", [], clock=clock)
    assert exc.value.category == "Problem Solving"


def test_items_are_snapshotted(quiz_factory, clock):
    items = [quiz_factory("q1", 1, "3"), quiz_factory("q2", 2, "5")]
    session = QuizSession.start("Arithmetic Sequence", "Solving", items, clock=clock)
    items.append(quiz_factory("q3", 0, "9"))
    items.pop(0)
    assert [q.id for q in session.items] == ["q1", "q2"]


@pytest.mark.parametrize("score, expected", [
    (0, "😢 Better luck next time!"),
    (3, "👏 Good job! 3 correct answers!"),
    (5, "🏆 Perfect score! Excellent work!"),
])
def test_summary_message(quiz_factory, clock, score, expected):
    session = _session(quiz_factory, clock)
    session.score = score
    assert session.summary_message() == expected


def test_summary_message_falls_back(quiz_factory, clock):
    session = _session(quiz_factory, clock)
    session.score = 9
    assert session.summary_message() == DEFAULT_MESSAGE


def test_question_timer_never_goes_negative(clock):
    timer = QuestionTimer(60, clock)
    clock.advance(500)
    assert timer.remaining() == 0
    assert timer.expired()
    timer.reset()
    assert timer.remaining() == 60
