"""
Capped in-memory record store indexed by user

Records are kept in insertion order. Once a user holds max_per_user records,
saving another drops that user's oldest; once the store holds max_records,
the oldest record overall is dropped. Reads only touch one user's index.
"""

from collections import OrderedDict, deque
from itertools import islice
from typing import Deque, Dict, Generic, Iterator, List, Optional, Protocol, TypeVar


class UserOwned(Protocol):
    id: str
    user_id: str


R = TypeVar("R", bound=UserOwned)


class BoundedUserStore(Generic[R]):

    def __init__(self, max_records: int, max_per_user: int):
        if max_records < 1 or max_per_user < 1:
            raise ValueError("store limits must be positive")
        self.max_records = max_records
        self.max_per_user = max_per_user
        self._records: "OrderedDict[str, R]" = OrderedDict()
        self._by_user: Dict[str, Deque[str]] = {}

    def __len__(self) -> int:
        return len(self._records)

    @property
    def user_count(self) -> int:
        return len(self._by_user)

    def put(self, record: R) -> R:
        if record.id in self._records:
            # Replacing keeps the record's position
            self._records[record.id] = record
            return record

        ids = self._by_user.setdefault(record.user_id, deque())
        if len(ids) >= self.max_per_user:
            del self._records[ids.popleft()]

        ids.append(record.id)
        self._records[record.id] = record

        while len(self._records) > self.max_records:
            _, evicted = self._records.popitem(last=False)
            self._unindex(evicted)

        return record

    def get(self, record_id: str) -> Optional[R]:
        return self._records.get(record_id)

    def newest_for_user(self, user_id: str, limit: int) -> List[R]:
        ids = self._by_user.get(user_id, ())
        return [self._records[record_id] for record_id in islice(reversed(ids), limit)]

    def for_user(self, user_id: str) -> Iterator[R]:
        for record_id in self._by_user.get(user_id, ()):
            yield self._records[record_id]

    def _unindex(self, record: R) -> None:
        ids = self._by_user[record.user_id]
        ids.remove(record.id)
        if not ids:
            del self._by_user[record.user_id]
