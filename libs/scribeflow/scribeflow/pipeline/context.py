"""Context prompts carried from one segment to the next."""

from __future__ import annotations


def context_tail(text: str | None, max_chars: int) -> str | None:
    """Return at most `max_chars` trailing characters of `text`.

    A word cut in half by the limit is dropped so the prompt starts on a word
    boundary. Returns None when there is nothing to carry over.
    """
    raw = str(text or "").strip()
    if max_chars <= 0 or not raw:
        return None
    if len(raw) <= max_chars:
        return raw

    tail = raw[-max_chars:]
    if not raw[-max_chars - 1].isspace():
        cut = tail.find(" ")
        if 0 <= cut < len(tail) - 1:
            tail = tail[cut + 1 :]
    return tail.strip() or None
