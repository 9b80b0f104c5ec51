class WebhookTransportError(Exception):
    """Falha de rede ou timeout ao chamar um webhook de automação"""


class StorageError(Exception):
    """Falha de leitura/escrita no banco"""


class DuplicateConversationError(StorageError):
    """Já existe conversa ativa para (instância, contato)"""


class DuplicateMessageError(StorageError):
    """Mensagem com o mesmo external_id já gravada na conversa"""


class IdentityError(Exception):
    """Token ausente, inválido ou provedor de identidade indisponível"""


class QrRenderError(Exception):
    """Payload de QR que não pode ser desenhado (ex.: grande demais)"""
