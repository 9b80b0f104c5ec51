from abc import ABC, abstractmethod
from typing import Optional
from src.Domain import ProfileEntity


class IProfileRepository(ABC):

    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[ProfileEntity]:...
