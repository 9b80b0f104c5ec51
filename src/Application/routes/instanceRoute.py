from fastapi import APIRouter, Depends, status
from typing import Any, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
import logging

from src.Application.dependecie import dependencies
from src.Application.mapper.resultMapper import raise_for_failure
from src.Application.security.currentUser import get_current_user
from src.Domain import UserContext, InstanceEntity, PairingSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/instances", tags=["Instances"])


# ========== DTOs (Data Transfer Objects) ==========

class InstanceCreateDTO(BaseModel):
    """DTO para cadastrar nova instância"""
    name: str = Field(..., description="Nome de exibição da instância")
    phone_number: str = Field(..., description="Número do WhatsApp")


class InstanceRenameDTO(BaseModel):
    name: str = Field(..., description="Novo nome de exibição")


class InstanceResponseDTO(BaseModel):
    """DTO para resposta de instância"""
    id: str
    name: str
    phone_number: str
    status: str
    qr_data: Optional[str] = None
    webhook_response: Optional[Any] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_entity(cls, instance: InstanceEntity) -> "InstanceResponseDTO":
        return cls(
            id=str(instance.id),
            name=instance.name,
            phone_number=instance.phone_number,
            status=instance.status.value,
            qr_data=instance.qr_data,
            webhook_response=instance.webhook_response,
            created_at=instance.created_at.isoformat() if instance.created_at else None,
            updated_at=instance.updated_at.isoformat() if instance.updated_at else None
        )


class QrImageDTO(BaseModel):
    kind: str
    src: str


class PairingSessionResponseDTO(BaseModel):
    """Estado do pareamento por QR"""
    instance_id: str
    state: str
    qr_payload: Optional[str] = None
    qr_image: Optional[QrImageDTO] = None
    error: Optional[str] = None
    updated_at: str

    @classmethod
    def from_session(cls, session: Optional[PairingSession]) -> Optional["PairingSessionResponseDTO"]:
        if session is None:
            return None
        return cls(**session.to_dict())


# ========== ENDPOINTS DE INSTÂNCIAS ==========

@router.post("/", response_model=InstanceResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_instance(data: InstanceCreateDTO, user: UserContext = Depends(get_current_user)):
    """
    Cadastra uma instância nova.

    O webhook de criação é chamado primeiro; a instância só é salva
    (como `pending`) quando o webhook responde `starting` ou `ok`.
    """
    service = dependencies.instanceRegistryService()
    result = raise_for_failure(await service.create_instance(user, data.name, data.phone_number))
    return InstanceResponseDTO.from_entity(result.value)


@router.get("/", response_model=List[InstanceResponseDTO])
async def list_instances(user: UserContext = Depends(get_current_user)):
    service = dependencies.instanceRegistryService()
    result = raise_for_failure(await service.list_instances(user))
    return [InstanceResponseDTO.from_entity(instance) for instance in result.value]


@router.get("/{instance_id}", response_model=InstanceResponseDTO)
async def get_instance(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.instanceRegistryService()
    result = raise_for_failure(await service.get_instance(user, instance_id))
    return InstanceResponseDTO.from_entity(result.value)


@router.patch("/{instance_id}", response_model=InstanceResponseDTO)
async def rename_instance(
    instance_id: UUID,
    data: InstanceRenameDTO,
    user: UserContext = Depends(get_current_user)
):
    service = dependencies.instanceRegistryService()
    result = raise_for_failure(await service.rename_instance(user, instance_id, data.name))
    return InstanceResponseDTO.from_entity(result.value)


@router.post("/{instance_id}/disconnect", response_model=InstanceResponseDTO)
async def disconnect_instance(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.instanceRegistryService()
    result = raise_for_failure(await service.disconnect_instance(user, instance_id))
    return InstanceResponseDTO.from_entity(result.value)


# ========== ENDPOINTS DE PAREAMENTO ==========

@router.post("/{instance_id}/pairing", response_model=PairingSessionResponseDTO)
async def request_pairing(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    """Pede um QR novo ao webhook e devolve a imagem pronta para exibir"""
    service = dependencies.pairingCoordinatorService()
    result = raise_for_failure(await service.request_pairing(user, instance_id))
    return PairingSessionResponseDTO.from_session(result.value)


@router.get("/{instance_id}/pairing", response_model=PairingSessionResponseDTO)
async def get_pairing_session(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.pairingCoordinatorService()
    result = raise_for_failure(await service.get_pairing_session(user, instance_id))
    return PairingSessionResponseDTO.from_session(result.value)


@router.post("/{instance_id}/pairing/confirm", response_model=InstanceResponseDTO)
async def confirm_pairing(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    """Usuário informa que já escaneou o QR"""
    service = dependencies.pairingCoordinatorService()
    result = raise_for_failure(await service.confirm_pairing(user, instance_id))
    return InstanceResponseDTO.from_entity(result.value)


@router.delete("/{instance_id}/pairing", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_pairing(instance_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.pairingCoordinatorService()
    raise_for_failure(await service.cancel_pairing(user, instance_id))
