from typing import List, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 200


def chunk_list(items: Sequence[T], size: int = DEFAULT_CHUNK_SIZE) -> List[List[T]]:
    if size <= 0:
        return [list(items)]
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
