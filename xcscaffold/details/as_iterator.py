from typing import Iterable, Iterator, List, Set, Tuple, TypeVar, Union

T = TypeVar("T")


# Make scalar string or container of strings iterable...
def str_iter(strings: Union[str, List[str], Set[str], Tuple[str, ...]]) -> Iterator[str]:
    if isinstance(strings, (list, set, tuple)):
        for v in strings:
            if not isinstance(v, str):
                raise TypeError(f"expected str, got {type(v).__name__}: {v!r}")
            yield v
    elif isinstance(strings, str):
        yield strings
    else:
        raise TypeError(f"expected str or collection, got {type(strings).__name__}")


# Deduplicate while preserving order
def unique(values: Iterable[T]) -> List[T]:
    seen: set = set()
    result: List[T] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result
