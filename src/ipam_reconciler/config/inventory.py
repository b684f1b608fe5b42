"""Appliance inventory management from YAML configuration."""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..appliance import create_client, ApplianceClient

logger = logging.getLogger(__name__)


class ApplianceInventory:
    """Manages the appliance inventory loaded from YAML config.

    ```yaml
    defaults:
      username: ipmadmin
      password_env: SOLIDSERVER_PASSWORD
      verify_ssl: true

    appliances:
      sds-prod:
        type: solidserver
        name: "Production SOLIDserver"
        host: sds.example.com
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._clients: dict[str, ApplianceClient] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the appliances.yaml config file."""
        env_path = os.environ.get("IPAM_RECONCILER_CONFIG")
        if env_path:
            return env_path

        search_paths = [
            Path.cwd() / "configs" / "appliances.yaml",
            Path.cwd() / "appliances.yaml",
            Path.home() / ".config" / "ipam-reconciler" / "appliances.yaml",
            Path("/etc/ipam-reconciler/appliances.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find appliances.yaml. Create one in ./configs/appliances.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {})
        for appliance_id, appliance_config in self._config.get("appliances", {}).items():
            for key, value in defaults.items():
                if key not in appliance_config:
                    appliance_config[key] = value

        logger.debug(
            f"Loaded {len(self.get_appliance_ids())} appliance(s) from {self.config_path}"
        )

    def get_appliance_ids(self) -> list[str]:
        """Get all appliance IDs."""
        return list(self._config.get("appliances", {}).keys())

    def get_appliance_config(self, appliance_id: str) -> dict:
        """Get raw config for an appliance."""
        appliances = self._config.get("appliances", {})
        if appliance_id not in appliances:
            raise KeyError(f"Unknown appliance: {appliance_id}")
        return appliances[appliance_id]

    def get_client(self, appliance_id: str) -> ApplianceClient:
        """Get or create the transport client for an appliance."""
        if appliance_id not in self._clients:
            config = self.get_appliance_config(appliance_id)
            self._clients[appliance_id] = create_client(appliance_id, dict(config))
        return self._clients[appliance_id]

    async def close_all(self) -> None:
        """Close all appliance clients."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
