"""Word-level diff between two text blobs.

Text is split into alternating whitespace and non-whitespace runs, so
reformatting shows up as a change. Concatenating the ``unchanged`` and
``removed`` segments rebuilds the old text; ``unchanged`` and ``added``
rebuild the new one.
"""

import difflib
import re
from typing import Literal, TypedDict

_TOKEN_RE = re.compile(r"\s+|\S+")

SegmentType = Literal["added", "removed", "unchanged"]


class Segment(TypedDict):
    type: SegmentType
    text: str


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text)


def diff(old_text: str, new_text: str) -> list[Segment]:
    """Diff *old_text* against *new_text*.

    >>> diff("hello", "hello world")
    [{'type': 'unchanged', 'text': 'hello'}, {'type': 'added', 'text': ' world'}]
    """
    old_tokens = tokenize(old_text)
    new_tokens = tokenize(new_text)
    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)

    segments: list[Segment] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            _append(segments, "unchanged", old_tokens[i1:i2])
        elif tag == "delete":
            _append(segments, "removed", old_tokens[i1:i2])
        elif tag == "insert":
            _append(segments, "added", new_tokens[j1:j2])
        else:
            _append(segments, "removed", old_tokens[i1:i2])
            _append(segments, "added", new_tokens[j1:j2])
    return segments


def diff_stats(segments: list[Segment]) -> dict[str, int]:
    """Count non-whitespace words per segment type."""
    stats = {"added": 0, "removed": 0, "unchanged": 0}
    for segment in segments:
        stats[segment["type"]] += len(segment["text"].split())
    return stats


def _append(segments: list[Segment], kind: SegmentType, tokens: list[str]) -> None:
    if not tokens:
        return
    text = "".join(tokens)
    if segments and segments[-1]["type"] == kind:
        segments[-1]["text"] += text
    else:
        segments.append({"type": kind, "text": text})
