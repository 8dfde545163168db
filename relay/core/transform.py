"""Text transforms applied to inbound lines before they are relayed.

Everything here is pure and stateless so protocol quirks stay out of the
router.
"""
from __future__ import annotations

import re

# mIRC formatting: underline, bold, color with optional fg[,bg], reset, reverse, italic
IRC_FORMATTING_RE = re.compile(r"\x1f|\x02|\x03(?:\d{1,2}(?:,\d{1,2})?)?|\x0f|\x16|\x1d")

# [![asm.png](https://files.gitter.im/x64dbg/x64dbg/0I1c/thumb/asm.png)](https://files.gitter.im/x64dbg/x64dbg/0I1c/asm.png)
GITTER_THUMB_RE = re.compile(
    r"^\[!\[[^\]]+\]\(https?://files\.gitter\.im/[^/]+/[^/]+/[^/]+/thumb/[^)]+\)\]\(([^)]+)\)$"
)
# [test.exe](https://files.gitter.im/x64dbg/x64dbg/ROVJ/test.exe)
GITTER_FILE_RE = re.compile(r"\[[^\]]+\]\((https://files\.gitter\.im/[^/]+/[^/]+/[^/]+/[^)]+)\)$")

GITTER_STATUS_ALLOW_RE = re.compile(r"\[Github\].+(opened|closed)")


def strip_irc_formatting(text: str) -> str:
    return IRC_FORMATTING_RE.sub("", text)


def rewrite_gitter_uploads(text: str) -> str:
    """Replace Gitter image/file upload markup with the bare file URL."""
    text = GITTER_THUMB_RE.sub(r"\1", text)
    return GITTER_FILE_RE.sub(r"\1", text)


def status_allowed(text: str) -> bool:
    """Only issue/PR opened and closed announcements pass."""
    return GITTER_STATUS_ALLOW_RE.search(text) is not None


def tag(author: str, text: str) -> str:
    return f"<{author}> {text}"


def split_lines(text: str) -> list[str]:
    return text.replace("\r", "").split("\n")
