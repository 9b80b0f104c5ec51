# src/Domain/interfaces/Repository/IInstanceRepository.py
from abc import ABC, abstractmethod
from typing import Any, List, Optional
from uuid import UUID
from src.Domain import InstanceEntity, InstanceStatus


class IInstanceRepository(ABC):
    """Todas as consultas são filtradas pelo dono (user_id)"""

    @abstractmethod
    async def create(self, instance: InstanceEntity) -> InstanceEntity:...
    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[InstanceEntity]:...
    @abstractmethod
    async def get_by_id(self, user_id: str, instance_id: UUID) -> Optional[InstanceEntity]:...
    @abstractmethod
    async def update_status(
        self,
        user_id: str,
        instance_id: UUID,
        status: InstanceStatus,
        allowed_from: List[InstanceStatus]
    ) -> Optional[InstanceEntity]:
        """Update condicional: só altera se o status atual estiver em `allowed_from`.
        Retorna None quando nenhuma linha foi alterada."""
        ...
    @abstractmethod
    async def update_qr_data(self, user_id: str, instance_id: UUID, qr_data: str) -> None:...
    @abstractmethod
    async def rename(self, user_id: str, instance_id: UUID, name: str) -> Optional[InstanceEntity]:...
