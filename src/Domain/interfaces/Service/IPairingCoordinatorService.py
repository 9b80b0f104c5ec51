from abc import ABC,abstractmethod
from uuid import UUID
from src.Domain import UserContext, OperationResult


class IPairingCoordinatorService(ABC):
    @abstractmethod
    async def request_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:...
    @abstractmethod
    async def confirm_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:...
    @abstractmethod
    async def get_pairing_session(self, user: UserContext, instance_id: UUID) -> OperationResult:...
    @abstractmethod
    async def cancel_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:...
