from __future__ import annotations

import logging
import sys
from typing import Callable, Optional

from interview_coach.core.models import OutputChannel, PersonalityMode, PersonalityPolicy, Revelation

logger = logging.getLogger(__name__)

SettingsCallback = Callable[[dict], None]

_KNOWN_KEYS = {"shortcut", "channel", "mode", "revelation"}


def default_shortcut(platform: Optional[str] = None) -> str:
    platform = (platform or sys.platform).lower()
    return "cmd+y" if platform.startswith("darwin") or "mac" in platform else "ctrl+shift+r"


class InMemorySettingsStore:
    """
    Read side of the user's settings plus change notifications.
    Persisting them is the caller's business.
    """

    def __init__(
        self,
        shortcut: Optional[str] = None,
        channel: OutputChannel = OutputChannel.VOICE,
        mode: PersonalityMode = PersonalityMode.INTERVIEWER,
        revelation: Revelation = Revelation.HINTS,
    ) -> None:
        self._values: dict = {
            "shortcut": shortcut or default_shortcut(),
            "channel": OutputChannel(channel),
            "mode": PersonalityMode(mode),
            "revelation": Revelation(revelation),
        }
        self._subscribers: list[SettingsCallback] = []

    def get_shortcut(self) -> str:
        return self._values["shortcut"]

    def get_channel_mode(self) -> OutputChannel:
        return self._values["channel"]

    def get_personality_policy(self) -> PersonalityPolicy:
        return PersonalityPolicy(
            mode=self._values["mode"],
            revelation=self._values["revelation"],
            output_channel=self._values["channel"],
        )

    def subscribe(self, callback: SettingsCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def update(self, **changes) -> dict:
        """Apply changes and notify subscribers with the keys that actually changed."""
        unknown = set(changes) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        if "shortcut" in changes:
            changes["shortcut"] = (changes["shortcut"] or "").strip().lower() or default_shortcut()
        if "channel" in changes:
            changes["channel"] = OutputChannel(changes["channel"])
        if "mode" in changes:
            changes["mode"] = PersonalityMode(changes["mode"])
        if "revelation" in changes:
            changes["revelation"] = Revelation(changes["revelation"])

        diff = {k: v for k, v in changes.items() if self._values.get(k) != v}
        if not diff:
            return {}
        self._values.update(diff)
        logger.debug("settings changed: %s", sorted(diff))
        for callback in list(self._subscribers):
            callback(dict(diff))
        return diff
