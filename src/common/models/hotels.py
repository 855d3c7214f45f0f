from dataclasses import dataclass, field
from typing import List


@dataclass
class Hotel:
    hotel_id: str
    name: str
    location: str
    owner_id: str
    manager_ids: List[str] = field(default_factory=list)
    hotel_code: str = ""

    def is_managed_by(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.manager_ids
