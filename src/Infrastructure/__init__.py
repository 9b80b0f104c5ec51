from .cross_cutting.automationWebhookClient import AutomationWebhookClient
from .cross_cutting.qrRenderer import QrRenderer

from .data.postgres.context.PostgresContext import PostgresContext
from .data.postgres.realtime.PostgresRealtimeGateway import PostgresRealtimeGateway

from .data.postgres.repository.InstanceRepository import InstanceRepository
from .data.postgres.repository.ConversationRepository import ConversationRepository
from .data.postgres.repository.MessageRepository import MessageRepository
from .data.postgres.repository.ProfileRepository import ProfileRepository

from .cross_cutting.identityProvider import HttpIdentityProvider
