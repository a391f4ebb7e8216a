import pytest

from interview_coach.context.builder import ConversationContextBuilder, build_context_message
from interview_coach.core.models import (
    PersonalityPolicy,
    Role,
    StaticProblemContext,
    TurnContext,
    add_line_numbers,
)

from conftest import TWO_SUM


def _builder(limit=8):
    builder = ConversationContextBuilder(history_limit=limit)
    builder.set_static_context(StaticProblemContext.from_snapshot(TWO_SUM))
    return builder


def test_context_message_includes_only_present_fields():
    msg = build_context_message(TurnContext(current_code=" 1: x = 1"))
    assert msg == "CURRENT CONTEXT:\n- Current Code:  1: x = 1"

    msg = build_context_message(
        TurnContext(
            current_code=" 1: x = 1",
            last_executed_input="nums = [3,3]",
            runtime_error="IndexError: list index out of range",
            runtime_exception="Line 3 in twoSum",
        )
    )
    assert "- Last Input: nums = [3,3]" in msg
    assert "- Runtime Error: IndexError: list index out of range" in msg
    assert "- Exception: Line 3 in twoSum" in msg


def test_turn_context_numbers_code_lines():
    ctx = TurnContext.from_snapshot(TWO_SUM)
    assert ctx.current_code == " 1: def twoSum(nums, target):\n 2:     pass"
    assert add_line_numbers("No code written yet") == "No code written yet"


def test_build_prompt_wraps_utterance_after_context():
    builder = _builder()
    prompt = builder.build_prompt("I'd use a hash map", TurnContext.from_snapshot(TWO_SUM), PersonalityPolicy())

    assert "Two Sum" in prompt.system_prompt
    assert prompt.full_user_message.startswith("CURRENT CONTEXT:\n- Current Code:  1: def twoSum")
    assert prompt.full_user_message.endswith('\n\nUser said: "I\'d use a hash map"')
    assert prompt.history == ()

    messages = prompt.to_messages()
    assert [m["role"] for m in messages] == ["system", "user"]


def test_history_is_capped_in_prompt_but_kept_in_full():
    builder = _builder(limit=8)
    for i in range(10):
        builder.record_turn(f"question {i}", f"answer {i}")

    prompt = builder.build_prompt("next", TurnContext(current_code="x"), PersonalityPolicy())

    assert len(builder.history) == 20
    assert len(prompt.history) == 8
    assert prompt.history[0].content == "question 6"
    assert prompt.history[-1].content == "answer 9"
    assert [m.role for m in prompt.history[:2]] == [Role.USER, Role.ASSISTANT]


def test_history_stores_bare_utterances():
    builder = _builder()
    builder.record_turn("my idea", "sounds good")
    assert builder.history[0].content == "my idea"
    assert "CURRENT CONTEXT" not in builder.history[0].content


def test_new_static_context_clears_history():
    builder = _builder()
    builder.record_turn("a", "b")
    builder.set_static_context(StaticProblemContext(title="Valid Parentheses"))

    assert builder.history == []
    assert builder.static_context.title == "Valid Parentheses"


def test_zero_limit_sends_no_history():
    builder = _builder(limit=0)
    builder.record_turn("a", "b")
    assert builder.history_tail() == ()


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        ConversationContextBuilder(history_limit=-1)


def test_prompt_without_problem_uses_generic_prompt():
    builder = ConversationContextBuilder()
    prompt = builder.build_prompt("hello", TurnContext(current_code="x"), PersonalityPolicy())
    assert "PROBLEM CONTEXT" not in prompt.system_prompt
    assert "mock coding interviewer" in prompt.system_prompt
