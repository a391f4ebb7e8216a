from interview_coach.context.prompts import TEMPLATES, TemplateKey, format_problem, system_prompt_for
from interview_coach.core.models import (
    OutputChannel,
    PersonalityMode,
    PersonalityPolicy,
    Revelation,
    StaticProblemContext,
)

PROBLEM = StaticProblemContext(title="Two Sum", description="Find two numbers.", topics="Array")


def test_every_policy_has_a_template():
    assert len(TEMPLATES) == len(PersonalityMode) * len(OutputChannel) * len(Revelation)


def test_voice_template_forbids_symbols():
    prompt = system_prompt_for(PersonalityPolicy(output_channel=OutputChannel.VOICE), PROBLEM)
    assert "Never use code blocks" in prompt
    assert "nums at index i" in prompt
    assert "```" not in prompt


def test_text_template_requires_fenced_code():
    prompt = system_prompt_for(PersonalityPolicy(output_channel=OutputChannel.TEXT), PROBLEM)
    assert "fenced code block with a language tag" in prompt
    assert "```python" in prompt


def test_sage_full_revelation_allows_solution():
    full = system_prompt_for(
        PersonalityPolicy(mode=PersonalityMode.SAGE, revelation=Revelation.FULL), PROBLEM
    )
    hints = system_prompt_for(
        PersonalityPolicy(mode=PersonalityMode.SAGE, revelation=Revelation.HINTS), PROBLEM
    )
    assert "walk through the complete solution" in full
    assert "Never hand over the complete solution" in hints
    assert "pair programming" in full.lower()


def test_interviewer_never_reveals_solution():
    prompt = system_prompt_for(
        PersonalityPolicy(mode=PersonalityMode.INTERVIEWER, revelation=Revelation.FULL), PROBLEM
    )
    assert "Never reveal the full solution" in prompt
    assert "walk through the complete solution" not in prompt


def test_problem_is_rendered_into_template():
    prompt = system_prompt_for(PersonalityPolicy(), PROBLEM)
    assert format_problem(PROBLEM) in prompt
    assert "- Hints: No hints available" in prompt
    assert TemplateKey.for_policy(PersonalityPolicy()) in TEMPLATES
