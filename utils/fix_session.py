import asyncio
import logging
import os
import re

from Features.QuickFixes import QuickFix

CONTENT_RE = re.compile(r'(content=")([^"]+)(")')
TITLE_RE = re.compile(r"(<title>)(.*?)(</title>)", re.S)

DEFAULT_APPLY_DELAY = float(os.getenv("APPLY_FIX_DELAY", "1.5"))


def _editable_pattern(implementation: str) -> re.Pattern | None:
    if CONTENT_RE.search(implementation):
        return CONTENT_RE
    if TITLE_RE.search(implementation):
        return TITLE_RE
    return None


def extract_editable_text(implementation: str) -> str:
    pattern = _editable_pattern(implementation)
    if not pattern:
        return ""
    return pattern.search(implementation).group(2)


def replace_editable_text(implementation: str, text: str) -> str:
    pattern = _editable_pattern(implementation)
    if not pattern or not text:
        return implementation
    return pattern.sub(lambda m: f"{m.group(1)}{text}{m.group(3)}", implementation, count=1)


class FixSession:
    """
    Tracks which quick fixes a user applied during one page view, plus the
    single fix currently being edited.
    """

    def __init__(self, apply_delay: float = DEFAULT_APPLY_DELAY):
        self.apply_delay = apply_delay
        self.applied: set[str] = set()
        self.applying: set[str] = set()
        self.editing: dict | None = None
        self.implementations: dict[str, str] = {}

    def is_applied(self, fix_id: str) -> bool:
        return fix_id in self.applied

    async def apply_fix(self, fix: QuickFix, implementation: str | None = None) -> bool:
        if fix.id in self.applied or fix.id in self.applying:
            return False

        self.applying.add(fix.id)
        try:
            await asyncio.sleep(self.apply_delay)
            self.applied.add(fix.id)
            self.implementations[fix.id] = implementation or fix.implementation
        finally:
            self.applying.discard(fix.id)

        logging.info(f"Fix applied: {fix.id}")
        return True

    def start_edit(self, fix: QuickFix) -> str:
        if not fix.editable:
            raise ValueError(f"Fix '{fix.id}' is not editable.")
        text = extract_editable_text(fix.implementation)
        self.editing = {"fix_id": fix.id, "text": text}
        return text

    def update_edit(self, text: str) -> None:
        if not self.editing:
            raise ValueError("No fix is being edited.")
        self.editing["text"] = text

    def finish_edit(self, fix: QuickFix) -> str:
        if not self.editing or self.editing["fix_id"] != fix.id:
            raise ValueError(f"Fix '{fix.id}' is not being edited.")
        updated = replace_editable_text(fix.implementation, self.editing["text"])
        self.editing = None
        return updated


class FixSessionRegistry:
    def __init__(self, apply_delay: float = DEFAULT_APPLY_DELAY):
        self.apply_delay = apply_delay
        self._sessions: dict[str, FixSession] = {}

    def get(self, session_id: str) -> FixSession:
        if session_id not in self._sessions:
            self._sessions[session_id] = FixSession(apply_delay=self.apply_delay)
        return self._sessions[session_id]

    def find(self, session_id: str) -> FixSession | None:
        """Returns an existing session without creating one."""
        return self._sessions.get(session_id)

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
