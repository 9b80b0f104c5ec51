from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional
from src.Domain import ChangeNotificationEntity

ChangeCallback = Callable[[ChangeNotificationEntity], Awaitable[None]]


class Subscription:
    """Assinatura de mudanças em uma tabela, opcionalmente filtrada por colunas"""

    def __init__(self, table: str, row_filter: Optional[Dict[str, str]], callback: ChangeCallback):
        self.table = table
        self.row_filter = dict(row_filter or {})
        self.callback = callback
        self.active = True

    def __repr__(self) -> str:
        return f"Subscription(table={self.table!r}, filter={self.row_filter!r}, active={self.active})"


class IRealtimeGateway(ABC):

    @abstractmethod
    async def subscribe(self, table: str, row_filter: Optional[Dict[str, str]], callback: ChangeCallback) -> Subscription:...
    @abstractmethod
    async def unsubscribe(self, subscription: Subscription) -> None:...
    @abstractmethod
    async def close(self) -> None:...
