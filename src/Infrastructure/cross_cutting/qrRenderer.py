import base64
import io
import re

import qrcode
from qrcode.exceptions import DataOverflowError

from src.config import settings
from src.Domain import IQrRenderer, QrImage, QrRenderError

_PNG_BASE64_PREFIX = "iVBORw0KGgo"
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class QrRenderer(IQrRenderer):
    """
    Transforma o payload de QR em algo exibível.
    O webhook pode mandar a imagem pronta (data URL, URL http ou base64 de PNG)
    ou apenas o texto do QR, que então é desenhado aqui.
    """

    def __init__(self, box_size: int | None = None, border: int | None = None):
        self.box_size = box_size or settings.QR_BOX_SIZE
        self.border = border if border is not None else settings.QR_BORDER

    def render(self, payload: str) -> QrImage:
        payload = payload.strip()
        if payload.startswith("data:image/"):
            return QrImage(kind="data_url", src=payload)
        if _URL_RE.match(payload):
            return QrImage(kind="url", src=payload)
        if payload.startswith(_PNG_BASE64_PREFIX):
            return QrImage(kind="data_url", src=f"data:image/png;base64,{payload}")
        return QrImage(kind="data_url", src=self._draw(payload))

    def _draw(self, text: str) -> str:
        qr = qrcode.QRCode(box_size=self.box_size, border=self.border)
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise QrRenderError(f"Payload de QR com {len(text)} caracteres não cabe em um QR: {e}") from e
        image = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
