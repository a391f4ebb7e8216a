from __future__ import annotations

import logging
from typing import Optional

from interview_coach.context.prompts import system_prompt_for
from interview_coach.core.models import (
    ConversationMessage,
    PersonalityPolicy,
    Prompt,
    Role,
    StaticProblemContext,
    TurnContext,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 8


def build_context_message(context: TurnContext) -> str:
    parts = ["CURRENT CONTEXT:", f"- Current Code: {context.current_code or 'No code written yet'}"]
    if context.last_executed_input:
        parts.append(f"- Last Input: {context.last_executed_input}")
    if context.runtime_error:
        parts.append(f"- Runtime Error: {context.runtime_error}")
    if context.runtime_exception:
        parts.append(f"- Exception: {context.runtime_exception}")
    return "\n".join(parts)


class ConversationContextBuilder:
    """
    Owns the conversation log and the static problem context.

    The full log is kept for display; only the last `history_limit` messages
    are sent to the model with each prompt.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if history_limit < 0:
            raise ValueError("history_limit must be >= 0")
        self._history_limit = history_limit
        self._history: list[ConversationMessage] = []
        self._static: Optional[StaticProblemContext] = None

    @property
    def static_context(self) -> Optional[StaticProblemContext]:
        return self._static

    @property
    def history(self) -> list[ConversationMessage]:
        return list(self._history)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def set_static_context(self, problem: StaticProblemContext) -> None:
        """Switch to a new problem. Prior turns are dropped: a new problem is a new interview."""
        self._static = problem
        dropped = len(self._history)
        self._history = []
        logger.info("static context set to %r; cleared %d messages", problem.title, dropped)

    def clear_history(self) -> None:
        self._history = []

    def history_tail(self) -> tuple[ConversationMessage, ...]:
        if self._history_limit == 0:
            return ()
        return tuple(self._history[-self._history_limit:])

    def build_prompt(self, user_utterance: str, turn_context: TurnContext, policy: PersonalityPolicy) -> Prompt:
        full_user_message = f'{build_context_message(turn_context)}\n\nUser said: "{user_utterance}"'
        prompt = Prompt(
            system_prompt=system_prompt_for(policy, self._static),
            full_user_message=full_user_message,
            history=self.history_tail(),
        )
        logger.debug(
            "built prompt: %d history messages of %d, policy=%s",
            len(prompt.history),
            len(self._history),
            policy,
        )
        return prompt

    def record_turn(self, user_utterance: str, assistant_reply: str) -> None:
        # Bare utterance only; the context block is rebuilt fresh every turn.
        self._history.append(ConversationMessage(role=Role.USER, content=user_utterance))
        self._history.append(ConversationMessage(role=Role.ASSISTANT, content=assistant_reply))
