"""Outbound message splitting for channels with a length limit."""


def split_message(text: str, max_length: int) -> list[str]:
    """Split *text* into chunks of at most *max_length* characters.

    Breaks at the last newline within the limit, else the last space, else
    a hard cut. A newline or space break is only taken when it falls in the
    second half of the window, so chunks never degenerate into slivers.
    Whitespace at the start of each following chunk is dropped.
    """
    if max_length <= 0:
        msg = "max_length must be positive"
        raise ValueError(msg)

    chunks: list[str] = []
    remaining = text

    while len(remaining) > max_length:
        split_at = remaining.rfind("\n", 0, max_length + 1)
        if split_at == -1 or split_at < max_length / 2:
            split_at = remaining.rfind(" ", 0, max_length + 1)
        if split_at == -1 or split_at < max_length / 2:
            split_at = max_length

        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip()

    if remaining:
        chunks.append(remaining)

    return chunks
