import threading
from typing import Iterable, Optional, Tuple


class EndpointPool:
    """
    Fixed, ordered list of RPC endpoint URLs with a shared rotation cursor.
    - current() returns urls[cursor % len(urls)].
    - at(position) returns the URL a call at that cursor position should use.
    - advance(observed) moves the cursor past a failed position, but only if no
      other caller has moved it since; concurrent failures on the same endpoint
      therefore rotate once instead of once per caller.
    """

    def __init__(self, urls: Iterable[str]) -> None:
        cleaned = tuple(url.strip() for url in urls if isinstance(url, str) and url.strip())
        if not cleaned:
            raise ValueError("EndpointPool requires at least one endpoint URL.")
        self._urls: Tuple[str, ...] = cleaned
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def urls(self) -> Tuple[str, ...]:
        return self._urls

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._urls)

    def at(self, position: int) -> str:
        return self._urls[position % len(self._urls)]

    def current(self) -> str:
        return self.at(self._cursor)

    def advance(self, observed: Optional[int] = None) -> str:
        with self._lock:
            if observed is None or self._cursor == observed:
                self._cursor += 1
            return self.at(self._cursor)
