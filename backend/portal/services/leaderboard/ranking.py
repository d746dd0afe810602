"""Leaderboard ranking engine: join, sort, paginate.

Pure functions over a snapshot of score and account records. A score field
that is missing or not a number is "not comparable": it never raises, and
its position relative to its neighbours is unspecified.
"""
import math
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, List, Optional

from portal.errors import FetchError, ValidationError

SORT_KEYS = ('score', 'height', 'time')
DEFAULT_SORT_KEY = 'score'
PLACEHOLDER_NAME = 'Anonymous'
MISSING_CELL = '—'


def is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


@dataclass(frozen=True)
class ScoreEntry:
    uid: str
    score: Optional[float] = None
    height: Optional[float] = None
    time: Optional[float] = None

    @classmethod
    def from_record(cls, uid: str, raw) -> 'ScoreEntry':
        if not isinstance(raw, dict):
            raise FetchError(f'Score record {uid} is not an object')
        return cls(
            uid=uid,
            score=raw.get('score') if is_number(raw.get('score')) else None,
            height=raw.get('height') if is_number(raw.get('height')) else None,
            time=raw.get('time') if is_number(raw.get('time')) else None,
        )


@dataclass(frozen=True)
class RankedEntry:
    uid: str
    display_name: str
    score: Optional[float] = None
    height: Optional[float] = None
    time: Optional[float] = None

    def value(self, key: str):
        return getattr(self, key)

    def to_dict(self) -> dict:
        return {
            'uid': self.uid,
            'username': self.display_name,
            'score': self.score,
            'height': self.height,
            'time': self.time,
            'display': {
                'score': f'{self.score:.2f}' if is_number(self.score) else MISSING_CELL,
                'height': str(self.height) if is_number(self.height) else MISSING_CELL,
                'time': f'{self.time:.2f}s' if is_number(self.time) else f'{MISSING_CELL}s',
            },
        }


@dataclass(frozen=True)
class RankedRow:
    rank: int
    entry: RankedEntry

    def to_dict(self) -> dict:
        payload = self.entry.to_dict()
        payload['rank'] = self.rank
        return payload


@dataclass(frozen=True)
class RankedPage:
    rows: List[RankedRow]
    page_index: int
    page_size: int
    total_pages: int
    total_entries: int

    def to_dict(self) -> dict:
        return {
            'rows': [row.to_dict() for row in self.rows],
            'page': self.page_index,
            'page_size': self.page_size,
            'total_pages': self.total_pages,
            'total_entries': self.total_entries,
        }


def scores_from_collection(raw) -> List[ScoreEntry]:
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise FetchError('Score collection is not an object')
    return [ScoreEntry.from_record(uid, value) for uid, value in raw.items()]


def build_leaderboard(scores: Iterable[ScoreEntry], accounts: Iterable, placeholder: str = PLACEHOLDER_NAME) -> List[RankedEntry]:
    """Attach a display name to every score entry, in input order."""
    names = {account.uid: account.username for account in accounts}
    return [
        RankedEntry(
            uid=entry.uid,
            display_name=names.get(entry.uid) or placeholder,
            score=entry.score,
            height=entry.height,
            time=entry.time,
        )
        for entry in scores
    ]


def check_sort_key(key: str) -> str:
    if key not in SORT_KEYS:
        raise ValidationError(f'Unknown sort key {key!r}; expected one of {", ".join(SORT_KEYS)}')
    return key


def sort_leaderboard(entries: Iterable[RankedEntry], key: str) -> List[RankedEntry]:
    """Sort descending by ``key``; pairs that are not both numeric compare equal."""
    check_sort_key(key)

    def compare(a: RankedEntry, b: RankedEntry) -> int:
        left, right = a.value(key), b.value(key)
        if not (is_number(left) and is_number(right)):
            return 0
        return (right > left) - (right < left)

    return sorted(entries, key=cmp_to_key(compare))


def total_pages_for(count: int, page_size: int) -> int:
    return math.ceil(count / page_size) if count else 0


def paginate(sorted_entries: List[RankedEntry], page_index: int, page_size: int) -> RankedPage:
    if page_size < 1:
        raise ValidationError('Page size must be at least 1')
    if page_index < 0:
        raise ValidationError('Page index cannot be negative')
    start = page_index * page_size
    chunk = sorted_entries[start:start + page_size]
    return RankedPage(
        rows=[RankedRow(rank=start + i + 1, entry=entry) for i, entry in enumerate(chunk)],
        page_index=page_index,
        page_size=page_size,
        total_pages=total_pages_for(len(sorted_entries), page_size),
        total_entries=len(sorted_entries),
    )
