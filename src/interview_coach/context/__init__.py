from interview_coach.context.builder import ConversationContextBuilder, build_context_message
from interview_coach.context.prompts import TEMPLATES, TemplateKey, system_prompt_for

__all__ = [
    "ConversationContextBuilder",
    "build_context_message",
    "TEMPLATES",
    "TemplateKey",
    "system_prompt_for",
]
