from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class PairingState(str, Enum):
    PENDING = "pending"
    QR_REQUESTED = "qr_requested"  # transitório, só em memória
    AWAITING_SCAN = "awaiting_scan"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass
class QrImage:
    """QR pronto para exibição: `src` pode ser URL http(s) ou data URL"""
    kind: str  # url | data_url
    src: str


@dataclass
class PairingSession:
    """Estado de pareamento de uma instância, mantido apenas na memória do coordenador"""
    instance_id: UUID
    user_id: str
    state: PairingState = PairingState.PENDING

    qr_payload: Optional[str] = None
    qr_image: Optional[QrImage] = None

    error: Optional[str] = None
    raw_response: Optional[Any] = None

    updated_at: datetime = field(default_factory=datetime.utcnow)

    def update(self, **kwargs):
        """Atualiza campos e timestamp"""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self.updated_at = datetime.utcnow()

    def to_dict(self) -> dict:
        return {
            "instance_id": str(self.instance_id),
            "state": self.state.value,
            "qr_payload": self.qr_payload,
            "qr_image": {"kind": self.qr_image.kind, "src": self.qr_image.src} if self.qr_image else None,
            "error": self.error,
            "updated_at": self.updated_at.isoformat(),
        }
