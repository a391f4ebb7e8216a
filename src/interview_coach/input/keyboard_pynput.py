from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pynput import keyboard

from interview_coach.input.shortcuts import KeyEvent, ShortcutDetector

logger = logging.getLogger(__name__)

_MODIFIER_KEYS = {
    keyboard.Key.ctrl: "ctrl",
    keyboard.Key.ctrl_l: "ctrl",
    keyboard.Key.ctrl_r: "ctrl",
    keyboard.Key.shift: "shift",
    keyboard.Key.shift_l: "shift",
    keyboard.Key.shift_r: "shift",
    keyboard.Key.alt: "alt",
    keyboard.Key.alt_l: "alt",
    keyboard.Key.alt_r: "alt",
    keyboard.Key.cmd: "meta",
    keyboard.Key.cmd_l: "meta",
    keyboard.Key.cmd_r: "meta",
}


class PynputShortcutSource:
    """
    The one global keyboard subscription. Runs pynput's listener thread and
    hands every translated event to the detector on the event loop thread.
    """

    def __init__(self, detector: ShortcutDetector, loop: asyncio.AbstractEventLoop) -> None:
        self._detector = detector
        self._loop = loop
        self._modifiers: set[str] = set()
        self._listener: Optional[keyboard.Listener] = None

    def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.daemon = True
        self._listener.start()
        logger.info("keyboard listener started (hold %s to talk)", self._detector.shortcut.label)

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()
        self._modifiers.clear()
        self._loop.call_soon_threadsafe(self._detector.reset)

    def _name(self, key) -> Optional[str]:
        if self._listener is not None:
            key = self._listener.canonical(key)
        char = getattr(key, "char", None)
        if char:
            # Control-modified letters arrive as control characters on some platforms.
            if len(char) == 1 and ord(char) < 32:
                char = chr(ord(char) + 96)
            return char.lower()
        name = getattr(key, "name", None)
        return name.lower() if name else None

    def _event(self, key: str) -> KeyEvent:
        return KeyEvent(
            key=key,
            ctrl="ctrl" in self._modifiers,
            shift="shift" in self._modifiers,
            alt="alt" in self._modifiers,
            meta="meta" in self._modifiers,
        )

    def _on_press(self, key) -> None:
        modifier = _MODIFIER_KEYS.get(key)
        if modifier:
            self._modifiers.add(modifier)
            event = self._event(modifier)
        else:
            name = self._name(key)
            if not name:
                return
            event = self._event(name)
        self._loop.call_soon_threadsafe(self._detector.key_down, event)

    def _on_release(self, key) -> None:
        modifier = _MODIFIER_KEYS.get(key)
        if modifier:
            self._modifiers.discard(modifier)
            event = self._event(modifier)
        else:
            name = self._name(key)
            if not name:
                return
            event = self._event(name)
        self._loop.call_soon_threadsafe(self._detector.key_up, event)
