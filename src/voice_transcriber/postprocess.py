"""Post-processing for decoder output (byte-level BPE markers, transcript merging)."""

import re

# Byte-level BPE markers for space and newline
WORD_BOUNDARY = "\u0120"
NEWLINE_MARKER = "\u010a"

# Control sequences such as <|endoftext|>, <|notimestamps|>
_CONTROL_RE = re.compile(r"<\|[^|<>]*\|>")


def clean_token_text(raw: str) -> str:
    """Convert concatenated BPE token strings to readable text.

    Handles:
    - Ġ word-boundary marker -> space
    - Ċ newline marker -> newline
    - Leftover <|...|> control sequences
    - Leading/trailing whitespace
    """
    if not raw:
        return ""
    text = raw.replace(WORD_BOUNDARY, " ")
    text = text.replace(NEWLINE_MARKER, "\n")
    text = _CONTROL_RE.sub("", text)
    return text.strip()


def merge_transcript(accumulated: str, new_text: str) -> str:
    """Merge new window text into an accumulated transcript using word-boundary overlap.

    Consecutive trigger windows share context, so the start of new_text often
    repeats the end of accumulated. Finds the longest word overlap between the
    end of accumulated and the start of new_text, then appends the new part.
    E.g. accumulated='one two three', new_text='two three four five'
    -> overlap 'two three', append 'four five' -> 'one two three four five'.

    When no overlap, the new text is appended as a new segment.
    """
    if not new_text or not new_text.strip():
        return accumulated
    if not accumulated:
        return new_text.strip()

    acc_words = accumulated.split()
    new_words = new_text.split()

    # Longest overlap: words at end of accumulated matching words at start of new
    best_overlap = 0
    for overlap in range(1, min(len(acc_words), len(new_words)) + 1):
        if acc_words[-overlap:] == new_words[:overlap]:
            best_overlap = overlap

    # New window fully contained in what we already have
    if best_overlap == 0 and _contains_words(acc_words, new_words):
        return accumulated

    suffix = new_words[best_overlap:]
    if suffix:
        return accumulated + " " + " ".join(suffix)
    return accumulated


def _contains_words(words: list, part: list) -> bool:
    """True if part appears as a contiguous run of whole words in words."""
    n = len(part)
    return any(words[i : i + n] == part for i in range(len(words) - n + 1))
