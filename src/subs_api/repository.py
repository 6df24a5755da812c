"""Repository contract the HTTP layer depends on."""

from __future__ import annotations

from typing import List, Optional, Protocol

from subs_api.models import ListOpts, RangeOpts, SubFilter, Subscription


class SubsRepository(Protocol):
    def add_sub(self, sub: Subscription) -> int: ...

    def get_sub(self, sub_id: int) -> Subscription: ...

    def update_sub(self, sub_id: int, sub: Subscription) -> None: ...

    def delete_sub(self, sub_id: int) -> None: ...

    def list_subs(self, opts: Optional[ListOpts] = None) -> List[Subscription]: ...

    def price_sum(self, filter: Optional[SubFilter] = None, period: Optional[RangeOpts] = None) -> int: ...
