"""Word-granularity smoothing for streamed text."""

import re
from collections.abc import AsyncIterator

# A word followed by the whitespace that ends it
_WORD_RE = re.compile(r"\S+\s+")


async def smooth_words(chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    """Re-chunk a text stream so every emitted piece ends on a word boundary.

    Provider chunks can split words ("Hel", "lo wor", "ld"). Text is held back
    until a word and its trailing whitespace are complete; whatever is left at
    the end of the stream is flushed as the final piece.
    """
    buffer = ""
    async for chunk in chunks:
        buffer += chunk
        match = _WORD_RE.search(buffer)
        while match:
            yield buffer[: match.end()]
            buffer = buffer[match.end():]
            match = _WORD_RE.search(buffer)

    if buffer:
        yield buffer
