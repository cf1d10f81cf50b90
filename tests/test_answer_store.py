import pytest

from conftest import FakeClock, make_quiz
from learnsync.engine.answer_store import AnswerStore, validate_submission
from learnsync.errors import SchemaError
from learnsync.models.answers import ANSWER_BUILDERS, MultiSelectAnswer, TextAnswer
from learnsync.models.quiz import Question, QuestionType, QuizDefinition
from learnsync.services.scoring import SCORERS


def _quiz(**overrides) -> QuizDefinition:
    return QuizDefinition.model_validate(make_quiz(**overrides))


def _text_quiz() -> QuizDefinition:
    return _quiz(
        questions=[
            {"id": "t1", "type": "text", "prompt": "Explain"},
            {"id": "m1", "type": "multi_select", "options": ["a", "b"], "correctAnswer": ["a"]},
        ]
    )


def test_time_goes_to_question_being_left() -> None:
    clock = FakeClock()
    store = AnswerStore(_quiz(), clock=clock)

    clock.advance(5)
    store.next_question()
    clock.advance(7)
    store.update_answer("q3", "false")
    clock.advance(3)
    store.go_to_question(0)

    assert store.time_spent == {"q1": 5, "q2": 7, "q3": 3}
    assert store.current_index == 0


def test_update_answer_upserts_and_tracks_progress() -> None:
    store = AnswerStore(_quiz(), clock=FakeClock())
    store.update_answer("q1", "3")
    store.update_answer("q1", "4")
    store.update_answer("q2", [])

    assert store.raw_answers() == {"q1": "4", "q2": []}
    assert store.answered_count == 1
    assert store.progress == pytest.approx(1 / 3)
    assert isinstance(store.answers["q2"], MultiSelectAnswer)


def test_answer_shape_mismatch_is_schema_error() -> None:
    store = AnswerStore(_quiz(), clock=FakeClock())
    with pytest.raises(SchemaError):
        store.update_answer("q2", "2")
    with pytest.raises(SchemaError):
        store.update_answer("q1", ["4"])
    with pytest.raises(SchemaError):
        store.update_answer("missing", "4")
    assert store.answers == {}


def test_flags_are_independent_of_answers() -> None:
    store = AnswerStore(_quiz(), clock=FakeClock())
    assert store.toggle_flag("q2") is True
    assert store.answered_count == 0
    assert store.toggle_flag("q2") is False
    assert store.flagged == set()


def test_navigation_bounds() -> None:
    store = AnswerStore(_quiz(), clock=FakeClock())
    assert store.previous_question() is False
    assert store.go_to_question(2) is True
    assert store.next_question() is False
    assert store.current_question.id == "q3"


def test_autosave_runs_on_interval_only() -> None:
    clock = FakeClock()
    saved = []
    store = AnswerStore(_quiz(), clock=clock, autosave_interval=30, on_save=saved.append)

    store.update_answer("q1", "4")
    store.update_answer("q1", "3")
    assert store.poll() is False
    clock.advance(31)
    assert store.poll() is True
    assert len(saved) == 1
    assert saved[0]["answers"] == {"q1": "3"}

    clock.advance(31)
    # Nothing changed since the last save
    assert store.poll() is False


def test_close_saves_once() -> None:
    saved = []
    with AnswerStore(_quiz(), clock=FakeClock(), on_save=saved.append) as store:
        store.update_answer("q1", "4")
    store.close()
    assert len(saved) == 1
    assert store.poll() is False


def test_snapshot_restore_round_trip() -> None:
    clock = FakeClock()
    store = AnswerStore(_quiz(), clock=clock)
    store.update_answer("q2", ["2"])
    store.toggle_flag("q3")
    clock.advance(4)
    snapshot = store.save_now()

    restored = AnswerStore(_quiz(), clock=clock)
    restored.restore({**snapshot, "answers": {**snapshot["answers"], "gone": "x"}})
    assert restored.raw_answers() == {"q2": ["2"]}
    assert restored.flagged == {"q3"}
    assert restored.current_index == 1
    assert restored.time_spent["q2"] == 4


def test_validation_warns_without_blocking() -> None:
    quiz = _text_quiz()
    report = validate_submission(quiz, {"t1": "too short", "m1": []})
    assert report.is_valid
    assert any("too short" in warning for warning in report.warnings)
    assert any("no option selected" in warning for warning in report.warnings)

    report = validate_submission(quiz, {})
    assert report.is_valid
    assert report.warnings == ["You have 2 unanswered question(s)."]


def test_validation_rejects_wrong_shapes() -> None:
    report = validate_submission(_quiz(), {"q1": ["4"], "q2": "2"})
    assert not report.is_valid
    assert len(report.errors) == 2


def test_unknown_question_type_is_schema_error() -> None:
    quiz = _quiz()
    # Simulate a definition produced by a newer service
    quiz.questions.append(Question.model_construct(id="x", type="matching", points=1))
    with pytest.raises(SchemaError):
        validate_submission(quiz, {})


def test_text_answers_keep_their_text() -> None:
    store = AnswerStore(_text_quiz(), clock=FakeClock())
    answer = store.update_answer("t1", "  photosynthesis  ")
    assert isinstance(answer, TextAnswer)
    assert store.raw_answers()["t1"] == "  photosynthesis  "


def test_every_question_type_has_a_builder_and_scorer() -> None:
    assert set(ANSWER_BUILDERS) == set(QuestionType)
    assert set(SCORERS) == set(QuestionType)
