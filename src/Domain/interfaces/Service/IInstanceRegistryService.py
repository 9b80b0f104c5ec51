from abc import ABC,abstractmethod
from uuid import UUID
from src.Domain import UserContext, OperationResult


class IInstanceRegistryService(ABC):
    @abstractmethod
    async def create_instance(self, user: UserContext, name: str, phone_number: str) -> OperationResult:...
    @abstractmethod
    async def list_instances(self, user: UserContext) -> OperationResult:...
    @abstractmethod
    async def get_instance(self, user: UserContext, instance_id: UUID) -> OperationResult:...
    @abstractmethod
    async def rename_instance(self, user: UserContext, instance_id: UUID, name: str) -> OperationResult:...
    @abstractmethod
    async def disconnect_instance(self, user: UserContext, instance_id: UUID) -> OperationResult:...
