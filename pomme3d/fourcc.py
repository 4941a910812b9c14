"""Four-character codes and the quit request raised by the application shell."""

from __future__ import annotations

import string
import sys

__all__ = ["QuitRequest", "fourcc_string", "fourcc", "exit_to_shell"]

# Punctuation that may stay in a four-character code shown as a file name.
_SAFE_SYMBOLS = frozenset("!#$%&'()+,-.;=@[]^_`{}")
_ALNUM = frozenset(string.ascii_letters + string.digits)

_QUIT_MESSAGE = "the user has requested to quit the application"


class QuitRequest(Exception):
    """Raised when the user has asked to leave the application."""

    def __init__(self, message: str = _QUIT_MESSAGE) -> None:
        super().__init__(message)


def fourcc(text: str) -> int:
    """Pack a four-character code such as ``'3DMF'`` into a 32-bit integer."""
    try:
        raw = text.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise ValueError(f"four-character code {text!r} is not single-byte text") from exc
    if len(raw) != 4:
        raise ValueError(f"four-character code must have 4 characters, got {text!r}")
    return int.from_bytes(raw, "big")


def fourcc_string(four_cc: int, filler: str = "?") -> str:
    """Render a 32-bit code as text fit for a file name.

    Characters that are neither ASCII letters, digits nor harmless punctuation
    are replaced by ``filler``. A zero byte ends the text.
    """
    if not 0 <= four_cc <= 0xFFFFFFFF:
        raise ValueError(f"four-character code out of 32-bit range: {four_cc}")
    if len(filler) != 1:
        raise ValueError("filler must be a single character")

    chars = []
    for byte in four_cc.to_bytes(4, "big"):
        if byte == 0:
            break
        char = chr(byte)
        chars.append(char if char in _ALNUM or char in _SAFE_SYMBOLS else filler)
    return "".join(chars)


def exit_to_shell() -> None:
    """Flush pending console output, then leave by raising :class:`QuitRequest`."""
    for stream in (sys.stdout, sys.stderr):
        flush = getattr(stream, "flush", None)
        if flush is not None:
            try:
                flush()
            except (OSError, ValueError):
                pass
    raise QuitRequest(_QUIT_MESSAGE)