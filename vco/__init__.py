"""
Python client for the VMware SD-WAN Orchestrator (VCO).

The orchestrator exposes its control plane through a REST resource API and a
JSONRPC method-call API. This package offers one async client over both,
with transparent session refresh and domain models that tolerate wire-format
drift between server versions, plus the ``vcoctl`` command-line tool.
"""

from .core.errors import VcoError
from .rpc.client import VcoClient
from .rpc.config import Config
from .rpc.session import Credentials

__version__ = "0.1.0"
__all__ = ["VcoClient", "Config", "Credentials", "VcoError"]
