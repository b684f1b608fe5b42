"""Transport clients for different appliance types."""
from .base import ApplianceClient, ApplianceConfig, TransportResponse
from .solidserver import SolidServerClient

__all__ = [
    "ApplianceClient",
    "ApplianceConfig",
    "TransportResponse",
    "SolidServerClient",
]

# Appliance type registry
APPLIANCE_TYPES = {
    "solidserver": SolidServerClient,
}


def create_client(appliance_id: str, config: dict) -> ApplianceClient:
    """Factory function to create appliance clients."""
    appliance_type = config.get("type", "").lower()
    if appliance_type not in APPLIANCE_TYPES:
        raise ValueError(f"Unknown appliance type: {appliance_type}")

    client_class = APPLIANCE_TYPES[appliance_type]
    return client_class(appliance_id, ApplianceConfig(**config))
