"""Caption word wrapping for drawtext text files."""

import unicodedata


def _strip_control_characters(text: str) -> str:
    """Drop control characters, keeping whitespace so words stay separated."""
    return "".join(
        ch for ch in text if ch.isspace() or unicodedata.category(ch) != "Cc"
    )


def wrap_text(text: str, max_width: int) -> str:
    """
    Wrap caption text into lines of at most max_width characters.

    Words are packed greedily onto the current line while
    ``len(line) + 1 + len(word) <= max_width``. A word longer than max_width
    gets a line of its own and is never split.

    Args:
        text: Raw caption text (any whitespace, including newlines, separates words)
        max_width: Maximum line width in characters

    Returns:
        Newline-joined lines; an empty string when the text has no words
    """
    if max_width <= 0:
        raise ValueError(f"max_width must be positive, got {max_width}")

    words = _strip_control_characters(text).split()
    if not words:
        return ""

    lines: list[str] = []
    current_line = words[0]
    for word in words[1:]:
        if len(current_line) + 1 + len(word) <= max_width:
            current_line += " " + word
        else:
            lines.append(current_line)
            current_line = word
    lines.append(current_line)

    return "\n".join(lines)
