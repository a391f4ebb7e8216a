from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MODIFIERS = ("ctrl", "shift", "alt", "meta")
_MODIFIER_ALIASES = {
    "ctrl": "ctrl",
    "control": "ctrl",
    "shift": "shift",
    "alt": "alt",
    "option": "alt",
    "cmd": "meta",
    "meta": "meta",
    "command": "meta",
}


@dataclass(frozen=True)
class Shortcut:
    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False

    @staticmethod
    def parse(text: str) -> "Shortcut":
        parts = [p.strip() for p in (text or "").lower().split("+") if p.strip()]
        mods = {_MODIFIER_ALIASES[p] for p in parts if p in _MODIFIER_ALIASES}
        keys = [p for p in parts if p not in _MODIFIER_ALIASES]
        if len(keys) != 1:
            raise ValueError(f"Shortcut needs exactly one non-modifier key: {text!r}")
        return Shortcut(key=keys[0], **{m: m in mods for m in MODIFIERS})

    @property
    def keys(self) -> frozenset[str]:
        held = {m for m in MODIFIERS if getattr(self, m)}
        held.add(self.key)
        return frozenset(held)

    @property
    def label(self) -> str:
        names = ["cmd" if m == "meta" else m for m in MODIFIERS if getattr(self, m)]
        return "+".join(names + [self.key]).upper()


@dataclass(frozen=True)
class KeyEvent:
    """One key transition; `key` is a lowercased character or a modifier name."""

    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False


class ShortcutDetector:
    """
    Turns raw key events into one press/release pair per physical press.

    A press fires at most once per `min_interval_s` (monotonic clock) and not
    again until the combination has been released, so key-repeat and events
    delivered twice never start a second turn. Release fires when the held keys
    stop matching the shortcut exactly, or on reset() (focus loss).
    """

    def __init__(
        self,
        shortcut: Shortcut,
        on_press: Callable[[], None],
        on_release: Callable[[], None],
        min_interval_s: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._shortcut = shortcut
        self._on_press = on_press
        self._on_release = on_release
        self._min_interval_s = min_interval_s
        self._clock = clock
        self._pressed: set[str] = set()
        self._active = False
        self._last_fire: Optional[float] = None

    @property
    def shortcut(self) -> Shortcut:
        return self._shortcut

    @property
    def active(self) -> bool:
        return self._active

    def set_shortcut(self, shortcut: Shortcut) -> None:
        if shortcut == self._shortcut:
            return
        self.reset()
        self._shortcut = shortcut

    def _matches(self, event: KeyEvent) -> bool:
        s = self._shortcut
        return (
            event.key == s.key
            and event.ctrl == s.ctrl
            and event.shift == s.shift
            and event.alt == s.alt
            and event.meta == s.meta
        )

    def _sync_modifiers(self, event: KeyEvent) -> None:
        for m in MODIFIERS:
            if getattr(event, m):
                self._pressed.add(m)
            else:
                self._pressed.discard(m)

    def key_down(self, event: KeyEvent) -> bool:
        """Returns True when this event fired on_press."""
        self._sync_modifiers(event)
        if event.key not in MODIFIERS:
            self._pressed.add(event.key)

        if not self._matches(event):
            return False
        if self._active:
            return False  # key repeat
        now = self._clock()
        if self._last_fire is not None and now - self._last_fire < self._min_interval_s:
            logger.debug("shortcut throttled, ignoring duplicate")
            return False
        self._last_fire = now
        self._active = True
        logger.debug("shortcut pressed: %s", self._shortcut.label)
        self._on_press()
        return True

    def key_up(self, event: KeyEvent) -> bool:
        """Returns True when this event fired on_release."""
        self._sync_modifiers(event)
        self._pressed.discard(event.key)

        if self._active and self._pressed != set(self._shortcut.keys):
            self._active = False
            logger.debug("shortcut released: %s", self._shortcut.label)
            self._on_release()
            return True
        return False

    def reset(self, notify: bool = True) -> None:
        """Window blur / visibility loss: forget held keys and release if active."""
        self._pressed.clear()
        if self._active:
            self._active = False
            if notify:
                self._on_release()
