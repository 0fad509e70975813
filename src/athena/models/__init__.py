"""Resource models and their decoders."""

from .account import Account, ExternalAuth
from .decoders import DECODERS, decode

__all__ = ["Account", "ExternalAuth", "DECODERS", "decode"]
