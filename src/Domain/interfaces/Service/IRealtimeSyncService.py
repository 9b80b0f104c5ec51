from abc import ABC,abstractmethod
from typing import Awaitable, Callable, List, Optional
from uuid import UUID
from src.Domain import UserContext

RefreshCallback = Callable[[List], Awaitable[None]]


class IRealtimeSyncService(ABC):
    @abstractmethod
    async def open_conversation_view(self, user: UserContext, conversation_id: UUID, on_refresh: Optional[RefreshCallback] = None):...
    @abstractmethod
    async def open_conversation_list_view(self, user: UserContext, instance_id: Optional[UUID] = None, on_refresh: Optional[RefreshCallback] = None):...
    @abstractmethod
    async def open_instance_list_view(self, user: UserContext, on_refresh: Optional[RefreshCallback] = None):...
    @abstractmethod
    async def close_all(self) -> None:...
