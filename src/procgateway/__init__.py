"""procgateway: FastCGI gateway for start/stop/restart/list process-control queries."""

from .config import GatewayConfig
from .service import GatewayState, RequestLoop, create_gateway_state

__version__ = "0.1.0"

__all__ = ["GatewayConfig", "GatewayState", "RequestLoop", "create_gateway_state", "__version__"]
