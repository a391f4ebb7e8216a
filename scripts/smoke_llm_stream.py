from __future__ import annotations

import asyncio
import sys

from dotenv import load_dotenv

from interview_coach.context.builder import ConversationContextBuilder
from interview_coach.core.config import CoachConfig
from interview_coach.core.factory import get_llm_provider
from interview_coach.core.logging_setup import configure_logging
from interview_coach.core.models import PersonalityPolicy, StaticProblemContext, TurnContext


async def _run(provider: str) -> str:
    llm = get_llm_provider(provider)
    builder = ConversationContextBuilder()
    builder.set_static_context(StaticProblemContext(title="Two Sum", topics="Array, Hash Table"))
    prompt = builder.build_prompt(
        "I'm thinking of checking every pair of numbers.",
        TurnContext(current_code=" 1: def twoSum(nums, target):\n 2:     pass"),
        PersonalityPolicy(),
    )

    def show(fragment: str) -> None:
        sys.stdout.write(fragment)
        sys.stdout.flush()

    return await llm.stream_complete(prompt, show)


def main() -> None:
    load_dotenv()
    configure_logging()
    provider = sys.argv[1] if len(sys.argv) > 1 else CoachConfig.from_env().llm_provider
    reply = asyncio.run(_run(provider))
    print()
    print(f"[{provider}] {len(reply)} chars")


if __name__ == "__main__":
    main()
