from dependency_injector import containers,providers

from src.Domain import (
                           #SERVICES
                           IInstanceRegistryService,
                           IPairingCoordinatorService,
                           IConversationService,
                           IRealtimeSyncService,

                           #INFRASTRUCTURE
                           IInstanceRepository,
                           IConversationRepository,
                           IMessageRepository,
                           IProfileRepository,
                           IAutomationWebhookClient,
                           IIdentityProvider,
                           IQrRenderer,
                           IRealtimeGateway
                        )
from src.Services import (
                           InstanceRegistryService,
                           PairingCoordinatorService,
                           ConversationService,
                           RealtimeSyncService
                         )

from src.Infrastructure import (
                                 InstanceRepository,
                                 ConversationRepository,
                                 MessageRepository,
                                 ProfileRepository,
                                 AutomationWebhookClient,
                                 HttpIdentityProvider,
                                 QrRenderer,
                                 PostgresRealtimeGateway
                               )


class Dependecie(containers.DeclarativeContainer):

   # ========== INFRASTRUCTURE ==========

   # Repositories
   instanceRepository: providers.Singleton[IInstanceRepository] = \
   providers.Singleton(InstanceRepository)

   conversationRepository: providers.Singleton[IConversationRepository] = \
   providers.Singleton(ConversationRepository)

   messageRepository: providers.Singleton[IMessageRepository] = \
   providers.Singleton(MessageRepository)

   profileRepository: providers.Singleton[IProfileRepository] = \
   providers.Singleton(ProfileRepository)

   # Cross cutting
   webhookClient: providers.Singleton[IAutomationWebhookClient] = \
   providers.Singleton(AutomationWebhookClient)

   qrRenderer: providers.Singleton[IQrRenderer] = \
   providers.Singleton(QrRenderer)

   identityProvider: providers.Singleton[IIdentityProvider] = \
   providers.Singleton(
       HttpIdentityProvider,
       profile_repo=profileRepository
   )

   realtimeGateway: providers.Singleton[IRealtimeGateway] = \
   providers.Singleton(PostgresRealtimeGateway)

   # ========== SERVICES ==========

   instanceRegistryService: providers.Singleton[IInstanceRegistryService] = \
   providers.Singleton(
       InstanceRegistryService,
       instance_repo=instanceRepository,
       webhook_client=webhookClient
   )

   # Guarda as sessões de pareamento em memória: precisa ser único no processo
   pairingCoordinatorService: providers.Singleton[IPairingCoordinatorService] = \
   providers.Singleton(
       PairingCoordinatorService,
       instance_repo=instanceRepository,
       webhook_client=webhookClient,
       qr_renderer=qrRenderer
   )

   conversationService: providers.Singleton[IConversationService] = \
   providers.Singleton(
       ConversationService,
       conversation_repo=conversationRepository,
       message_repo=messageRepository,
       instance_repo=instanceRepository
   )

   realtimeSyncService: providers.Singleton[IRealtimeSyncService] = \
   providers.Singleton(
       RealtimeSyncService,
       gateway=realtimeGateway,
       instance_registry=instanceRegistryService,
       conversation_service=conversationService
   )


dependencies = Dependecie()
