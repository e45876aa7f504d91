import random

import pytest

from math_quest.models import Operation, QuizConfig, SessionState, SubmitOutcome
from math_quest.state import InvalidStateTransition, QuizSession, SessionStore


def _session(narrator=None, seed=3, **config):
    config.setdefault("difficulty", "easy")
    config.setdefault("question_count", 3)
    config.setdefault("max_number", 20)
    session = QuizSession(rng=random.Random(seed), narrator=narrator)
    session.start(QuizConfig(**config))
    return session


def _answer(session):
    return session.questions[session.current_index].fact.answer


def test_three_correct_answers_complete_the_quiz():
    session = _session()
    assert session.state == SessionState.ACTIVE
    assert session.current_index == 0
    for _ in range(3):
        result = session.submit_answer(_answer(session))
        assert result.outcome == SubmitOutcome.CORRECT
    assert session.state == SessionState.COMPLETE
    assert result.completed is True
    summary = session.summary()
    assert (summary.correct, summary.total_attempts, summary.accuracy_percent) == (3, 3, 100)
    assert summary.first_try_correct == 3
    assert summary.message.startswith("Perfect score")


def test_missing_answer_is_not_penalized():
    session = _session()
    for _ in range(3):
        result = session.submit_answer(None)
        assert result.outcome == SubmitOutcome.NO_ANSWER
    assert session.questions[0].attempts == 0
    assert session.current_index == 0
    assert session.score.total_attempts == 0
    assert session.state == SessionState.ACTIVE


def test_wrong_answer_stays_on_question():
    session = _session()
    wrong = _answer(session) + 1
    result = session.submit_answer(wrong)
    assert result.outcome == SubmitOutcome.INCORRECT
    assert result.attempts == 1
    assert session.current_index == 0
    result = session.submit_answer(_answer(session))
    assert result.outcome == SubmitOutcome.CORRECT
    assert result.attempts == 2
    assert session.current_index == 1
    assert session.score.correct == 1
    assert session.score.total_attempts == 2


def test_summary_counts_first_try_answers():
    session = _session(question_count=2)
    session.submit_answer(_answer(session) + 1)
    session.submit_answer(_answer(session))
    session.submit_answer(_answer(session))
    summary = session.summary()
    assert summary.total_attempts == 3
    assert summary.accuracy_percent == 100
    assert summary.first_try_correct == 1
    assert summary.message.startswith("Nice work")


def test_retry_reuses_the_same_facts():
    session = _session(question_count=4)
    original = [q.fact for q in session.questions]
    while session.state == SessionState.ACTIVE:
        session.submit_answer(_answer(session) + 1)
        session.submit_answer(_answer(session))
    session.retry()
    assert session.state == SessionState.ACTIVE
    assert [q.fact for q in session.questions] == original
    assert all(q.attempts == 0 and not q.solved for q in session.questions)
    assert session.current_index == 0
    assert session.score.correct == 0 and session.score.total_attempts == 0


def test_start_regenerates_facts():
    session = _session(question_count=10, difficulty="advanced", max_number=200)
    first_ids = [q.id for q in session.questions]
    first_facts = [q.fact for q in session.questions]
    session.start(session.config)
    assert [q.id for q in session.questions] != first_ids
    assert [q.fact for q in session.questions] != first_facts
    assert session.state == SessionState.ACTIVE


def test_invalid_transitions_leave_state_alone():
    fresh = QuizSession(rng=random.Random(1))
    assert fresh.state == SessionState.BUILDING
    with pytest.raises(InvalidStateTransition):
        fresh.submit_answer(3)

    session = _session()
    with pytest.raises(InvalidStateTransition):
        session.retry()
    with pytest.raises(InvalidStateTransition):
        session.summary()
    assert session.state == SessionState.ACTIVE

    for _ in range(3):
        session.submit_answer(_answer(session))
    total = session.score.total_attempts
    with pytest.raises(InvalidStateTransition):
        session.submit_answer(0)
    assert session.score.total_attempts == total
    assert session.state == SessionState.COMPLETE


def test_operation_override_is_respected():
    session = _session(question_count=12, operations=["div"])
    assert {q.fact.operation for q in session.questions} == {Operation.DIV}


def test_word_problems_are_narrated(fake_narrator):
    session = _session(narrator=fake_narrator, question_count=8, include_word_problems=True)
    narrated = [q for q in session.questions if q.narrative]
    assert narrated
    assert all(q.narration_source == "ai" for q in narrated)
    assert len(fake_narrator.calls) == len(narrated)
    for q in narrated:
        assert q.prompt == q.narrative


def test_without_word_problems_prompts_are_equations(fake_narrator):
    session = _session(narrator=fake_narrator)
    assert fake_narrator.calls == []
    assert all(q.prompt.endswith("= ?") for q in session.questions)


def test_narration_failure_keeps_the_fact(failing_narrator):
    session = _session(narrator=failing_narrator, seed=5, include_word_problems=True)
    narrated = [q for q in session.questions if q.narrative]
    assert narrated
    for q in narrated:
        assert q.narration_source == "local"
        assert str(q.fact.operand_a) in q.narrative
        assert str(q.fact.operand_b) in q.narrative


def test_renarrate_changes_text_only(fake_narrator):
    session = _session(narrator=fake_narrator)
    fact = session.questions[1].fact
    session.submit_answer(_answer(session) + 1)
    view = session.renarrate(1)
    assert view.word_problem is True
    assert session.questions[1].fact == fact
    assert session.questions[0].attempts == 1
    with pytest.raises(IndexError):
        session.renarrate(3)


def test_answer_key_lists_answers_and_views_hide_them():
    session = _session()
    key = session.answer_key()
    assert [k.answer for k in key] == [q.fact.answer for q in session.questions]
    view = session.current_question()
    assert "answer" not in view.model_dump()


def test_store_creates_and_discards():
    store = SessionStore()
    session_id = store.create_session(QuizConfig(question_count=2), rng=random.Random(1))
    assert store.has_session(session_id)
    assert store.get(session_id).state == SessionState.ACTIVE
    store.discard(session_id)
    assert not store.has_session(session_id)
