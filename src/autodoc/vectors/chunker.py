"""Overlapping windows over document text for embedding."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextWindow:
    start: int
    end: int
    text: str


def window_text(text: str, max_chars: int = 2000, overlap: int = 200) -> list[TextWindow]:
    """Split text into windows of at most ``max_chars`` characters.

    Each window tries to end on a paragraph break, then a line break, then
    a space, as long as that keeps it past the midpoint of the window.
    Consecutive windows overlap by up to ``overlap`` characters and always
    touch, so every character of ``text`` lands in at least one window.
    """
    if max_chars <= 0 or not 0 <= overlap < max_chars:
        raise ValueError("need max_chars > 0 and 0 <= overlap < max_chars")
    if not text:
        return []

    windows = []
    start = 0
    while True:
        end = min(start + max_chars, len(text))
        if end < len(text):
            end = _break_point(text, start, end)
        windows.append(TextWindow(start, end, text[start:end]))
        if end >= len(text):
            return windows
        # Never stall and never leave a gap.
        start = max(end - overlap, start + 1)


def _break_point(text: str, start: int, end: int) -> int:
    floor = start + (end - start) // 2
    for sep in ("\n\n", "\n", " "):
        idx = text.rfind(sep, floor, end)
        if idx != -1:
            return idx + len(sep)
    return end
