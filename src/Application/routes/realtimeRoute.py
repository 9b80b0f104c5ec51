from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Awaitable, Callable, Optional
from uuid import UUID
import logging

from src.Application.dependecie import dependencies
from src.Application.routes.conversationRoute import ConversationResponseDTO, MessageResponseDTO
from src.Application.routes.instanceRoute import InstanceResponseDTO
from src.Application.security.currentUser import resolve_user
from src.Domain import UserContext, OperationResult, IdentityError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ws", tags=["Realtime"])

WS_UNAUTHORIZED = 4401
WS_OPEN_FAILED = 4404

OpenView = Callable[[UserContext, Callable], Awaitable[OperationResult]]


async def _serve_view(websocket: WebSocket, kind: str, open_view: OpenView, to_dto: Callable) -> None:
    """
    Mantém uma view ao vivo enquanto o socket estiver aberto.
    Cada recarga envia a coleção inteira: {"type": kind, "items": [...]}.
    O cliente pode mandar "refresh" para forçar uma recarga.
    """
    await websocket.accept()
    try:
        user = await resolve_user(websocket.query_params.get("token", ""))
    except IdentityError as e:
        logger.info(f"[WS] 🔒 Conexão recusada: {e}")
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    async def push(items):
        await websocket.send_json({
            "type": kind,
            "items": [to_dto(item).model_dump(mode="json") for item in items]
        })

    result = await open_view(user, push)
    if not result.ok:
        await websocket.send_json({
            "type": "error",
            "failure": result.failure.value,
            "message": result.message
        })
        await websocket.close(code=WS_OPEN_FAILED)
        return

    view = result.value
    try:
        while True:
            text = await websocket.receive_text()
            if text == "refresh":
                await view.refresh()
    except WebSocketDisconnect:
        logger.info(f"[WS] 👋 Cliente saiu da view {kind}")
    finally:
        await view.close()


@router.websocket("/instances")
async def instances_view(websocket: WebSocket):
    service = dependencies.realtimeSyncService()
    await _serve_view(
        websocket,
        "instances",
        lambda user, push: service.open_instance_list_view(user, on_refresh=push),
        InstanceResponseDTO.from_entity
    )


@router.websocket("/conversations")
async def conversations_view(websocket: WebSocket, instance_id: Optional[UUID] = None):
    service = dependencies.realtimeSyncService()
    await _serve_view(
        websocket,
        "conversations",
        lambda user, push: service.open_conversation_list_view(user, instance_id, on_refresh=push),
        ConversationResponseDTO.from_entity
    )


@router.websocket("/conversations/{conversation_id}")
async def messages_view(websocket: WebSocket, conversation_id: UUID):
    """Abrir a conversa também zera as não lidas"""
    service = dependencies.realtimeSyncService()
    await _serve_view(
        websocket,
        "messages",
        lambda user, push: service.open_conversation_view(user, conversation_id, on_refresh=push),
        MessageResponseDTO.from_entity
    )
