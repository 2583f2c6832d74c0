from __future__ import annotations

from typing import Iterable, List, Tuple

from apps.payables.exceptions import ProcessorError
from apps.users.models import User


class FakeProcessor:
    """Records transfers in memory; users opt into setup, failures or crashes by id."""

    def __init__(self, ready: Iterable[int] = (), fail: Iterable[int] = (), explode: Iterable[int] = ()) -> None:
        self.ready = set(ready)
        self.fail = set(fail)
        self.explode = set(explode)
        self.calls: List[Tuple[int, int, str]] = []

    def has_completed_setup(self, user: User) -> bool:
        return user.id in self.ready

    def transfer(self, user: User, amount: int, *, batch_id: str, idempotency_key: str, description: str = "") -> str:
        self.calls.append((user.id, amount, idempotency_key))
        if user.id in self.fail:
            raise ProcessorError("card_declined")
        if user.id in self.explode:
            raise RuntimeError("boom")
        return f"tr_{user.id}_{len(self.calls)}"
