"""Split oversized project descriptions into line-respecting chunks."""

from scrum_master.models import Chunk


def split_text(text: str, max_chunk_chars: int) -> list[Chunk]:
    """Split ``text`` into chunks of at most ``max_chunk_chars`` characters.

    Splits only at line boundaries. Lines keep their newline, so joining the
    chunk texts reproduces ``text`` exactly. The limit is a soft target: a
    single line longer than it becomes a chunk of its own.
    """
    if max_chunk_chars <= 0:
        raise ValueError("max_chunk_chars must be positive")
    if len(text) <= max_chunk_chars:
        return [Chunk(text=text, index=1, total=1)]

    pieces: list[str] = []
    current: list[str] = []
    size = 0
    for line in text.splitlines(keepends=True):
        if current and size + len(line) > max_chunk_chars:
            pieces.append("".join(current))
            current, size = [], 0
        current.append(line)
        size += len(line)
    if current:
        pieces.append("".join(current))

    return [Chunk(text=piece, index=i, total=len(pieces)) for i, piece in enumerate(pieces, start=1)]
