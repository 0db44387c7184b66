from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol

from .model import Ward


class WardRepository(Protocol):
    def get(self, ward_id: int) -> Optional[Ward]:
        raise NotImplementedError

    def get_many(self, ward_ids: Iterable[int]) -> Dict[int, Ward]:
        """Wards by id; ids that do not exist are simply absent."""
        raise NotImplementedError
