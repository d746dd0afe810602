from typing import List, Optional

from portal.errors import FetchError
from portal.services.accounts.records import accounts_from_collection
from .ranking import (
    DEFAULT_SORT_KEY,
    PLACEHOLDER_NAME,
    RankedEntry,
    RankedPage,
    build_leaderboard,
    check_sort_key,
    paginate,
    scores_from_collection,
    sort_leaderboard,
    total_pages_for,
)

EMPTY_MESSAGE = 'No scores yet.'


def load_snapshot(store, placeholder: str = PLACEHOLDER_NAME) -> List[RankedEntry]:
    """Read scores and accounts and join them. Raises FetchError on failure."""
    scores = scores_from_collection(store.read_record('scores'))
    # Only names are needed here, so a malformed ban value does not fail the board
    accounts = accounts_from_collection(store.read_record('users'), lenient=True) if scores else []
    return build_leaderboard(scores, accounts, placeholder)


class LeaderboardState:
    """Sort key and page index of one leaderboard view.

    A new snapshot or a different sort key sends the view back to the
    first page; page requests are clamped to the pages that exist.
    """

    def __init__(self, page_size: int, sort_key: str = DEFAULT_SORT_KEY):
        self.page_size = page_size
        self.sort_key = check_sort_key(sort_key)
        self.page_index = 0
        self._entries: Optional[List[RankedEntry]] = None

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def replace_entries(self, entries: List[RankedEntry]) -> None:
        self._entries = list(entries)
        self.page_index = 0

    def set_sort_key(self, key: str) -> None:
        check_sort_key(key)
        if key != self.sort_key:
            self.sort_key = key
            self.page_index = 0

    def total_pages(self) -> int:
        return total_pages_for(len(self._entries or []), self.page_size)

    def clamp(self, page_index: int) -> int:
        last = max(self.total_pages() - 1, 0)
        return min(max(page_index, 0), last)

    def go_to(self, page_index: int) -> None:
        self.page_index = self.clamp(page_index)

    def next_page(self) -> None:
        self.go_to(self.page_index + 1)

    def previous_page(self) -> None:
        self.go_to(self.page_index - 1)

    def current_page(self) -> RankedPage:
        if self._entries is None:
            raise FetchError('Leaderboard has not been loaded')
        ordered = sort_leaderboard(self._entries, self.sort_key)
        return paginate(ordered, self.page_index, self.page_size)

    def to_dict(self) -> dict:
        page = self.current_page()
        payload = page.to_dict()
        payload['sort'] = self.sort_key
        payload['empty'] = page.total_entries == 0
        payload['message'] = EMPTY_MESSAGE if page.total_entries == 0 else None
        return payload
