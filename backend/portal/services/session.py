"""Per-connection session plumbing for realtime surfaces."""
from typing import Callable, List, Optional

AuthHandler = Callable[[Optional[str]], None]


class AuthChannel:
    """Auth-state subscription for one client connection.

    A handler is called once when it subscribes, with the current account id
    (None when signed out), and again on every publish until it unsubscribes.
    """

    def __init__(self, current: Optional[str] = None):
        self.current = current
        self._handlers: List[AuthHandler] = []

    def subscribe(self, handler: AuthHandler) -> Callable[[], None]:
        self._handlers.append(handler)
        handler(self.current)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, uid: Optional[str]) -> None:
        self.current = uid
        for handler in list(self._handlers):
            handler(uid)

    def close(self) -> None:
        self._handlers.clear()


class ViewContext:
    """Drops fetch completions that belong to a superseded or closed view.

    Each fetch takes a token from `begin()`; its completion only applies
    while that token is still the newest one and the view is open.
    """

    def __init__(self):
        self._generation = 0
        self.closed = False

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return not self.closed and token == self._generation

    def deliver(self, token: int, callback: Callable, *args) -> bool:
        if not self.is_current(token):
            return False
        callback(*args)
        return True

    def close(self) -> None:
        self.closed = True
