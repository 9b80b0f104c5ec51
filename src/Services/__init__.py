from .instanceRegistryService import InstanceRegistryService
from .pairingCoordinatorService import PairingCoordinatorService
from .ConversationService import ConversationService
from .realtimeSyncService import RealtimeSyncService, LiveView
