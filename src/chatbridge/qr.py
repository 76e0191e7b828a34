"""
QR Payloads

Pairing codes arrive from the transport as opaque strings. A renderer turns
each code into the payload emitted on the client's ``qr`` event; rendering
an actual QR image is left to the caller's renderer.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

BANNER = "=== Scan QR Code ==="


@dataclass(frozen=True)
class QRCode:
    """
    Rendered pairing payload.

    Attributes:
        code: Raw pairing code from the transport
        terminal: Text to show in a terminal, if the renderer produced one
        image: Encoded image (for example a data URL), if produced
    """

    code: str
    terminal: Optional[str] = None
    image: Optional[str] = None


class QRRenderer(Protocol):
    def render(self, code: str) -> QRCode:
        ...


class TextQRRenderer:
    """Default renderer: presents the raw code under a banner."""

    def render(self, code: str) -> QRCode:
        return QRCode(code=code, terminal=f"{BANNER}\n{code}")
