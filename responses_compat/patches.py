"""Detection of apply_patch blocks embedded in free text"""

from typing import List, Tuple

BEGIN_MARKER = "*** Begin Patch"
END_MARKER = "*** End Patch"


def find_patch_spans(text: str) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` offsets of complete, non-overlapping patch blocks

    Each span covers both markers. A begin marker without a following end
    marker produces no span.
    """
    spans: List[Tuple[int, int]] = []
    if not text:
        return spans

    position = 0
    while True:
        start = text.find(BEGIN_MARKER, position)
        if start == -1:
            break
        end = text.find(END_MARKER, start + len(BEGIN_MARKER))
        if end == -1:
            break
        stop = end + len(END_MARKER)
        spans.append((start, stop))
        position = stop
    return spans


def find_patch_blocks(text: str) -> List[str]:
    """Extract every complete patch block, markers included, in order"""
    return [text[start:stop] for start, stop in find_patch_spans(text)]


def split_patch_blocks(text: str) -> Tuple[str, List[str]]:
    """Separate prose from patch blocks

    Returns:
        The text with every block removed (stripped) and the blocks themselves
    """
    spans = find_patch_spans(text)
    if not spans:
        return text, []

    prose_parts = []
    cursor = 0
    for start, stop in spans:
        prose_parts.append(text[cursor:start])
        cursor = stop
    prose_parts.append(text[cursor:])
    return "".join(prose_parts).strip(), [text[start:stop] for start, stop in spans]
