from libdigest.encoders.abc import DigestEncoder
from libdigest.encoders.callable import CallableEncoder

__all__ = ["CallableEncoder", "DigestEncoder"]
