from .exceptions import (
    WebhookTransportError,
    StorageError,
    DuplicateConversationError,
    DuplicateMessageError,
    IdentityError,
    QrRenderError
)

from .entities.userContextEntity import UserContext
from .entities.profileEntity import ProfileEntity
from .entities.operationResultEntity import OperationResult, FailureKind
from .entities.webhookResponseEntity import WebhookResponseEntity
from .entities.changeNotificationEntity import ChangeNotificationEntity

from .entities.instanceEntity import InstanceEntity, InstanceStatus, can_transition, sources_for
from .entities.pairingSessionEntity import PairingSession, PairingState, QrImage
from .entities.conversationEntity import ConversationEntity, ConversationStatus
from .entities.messageEntity import (
    MessageEntity,
    MessageDirection,
    DeliveryStatus,
    AttachmentEntity,
    MediaKind
)

#Infrastructure CrossCutting
from .interfaces.IAutomationWebhookClient import IAutomationWebhookClient
from .interfaces.IIdentityProvider import IIdentityProvider
from .interfaces.IQrRenderer import IQrRenderer
from .interfaces.IRealtimeGateway import IRealtimeGateway, Subscription

#Infrastructure Repository
from .interfaces.Repository.IInstanceRepository import IInstanceRepository
from .interfaces.Repository.IConversationRepository import IConversationRepository
from .interfaces.Repository.IMessageRepository import IMessageRepository
from .interfaces.Repository.IProfileRepository import IProfileRepository

#Service
from .interfaces.Service.IInstanceRegistryService import IInstanceRegistryService
from .interfaces.Service.IPairingCoordinatorService import IPairingCoordinatorService
from .interfaces.Service.IConversationService import IConversationService
from .interfaces.Service.IRealtimeSyncService import IRealtimeSyncService
