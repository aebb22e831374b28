"""Configuration models for nodewatch."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .. import constants
from ..exceptions import ConfigurationError


class ProviderKind(Enum):
    """How a node's endpoint is reached."""
    RPC = "rpc"  # Self-hosted node, plain URL
    INFURA = "infura"  # endpoint + project id
    ALCHEMY = "alchemy"  # endpoint + api key


DEFAULT_ENDPOINTS = {
    ProviderKind.INFURA: "https://mainnet.infura.io/v3/",
    ProviderKind.ALCHEMY: "https://eth-mainnet.alchemyapi.io/v2/",
}

DEFAULT_VERSIONS = {
    ProviderKind.RPC: constants.DEFAULT_VERSION,
    ProviderKind.INFURA: constants.INFURA_VERSION,
    ProviderKind.ALCHEMY: constants.ALCHEMY_VERSION,
}


class NodeConfig(BaseModel):
    """Connection settings for one monitored node."""

    name: str = Field(min_length=1)
    kind: ProviderKind = Field(default=ProviderKind.RPC)
    url: Optional[str] = Field(default=None, description="Full URL for self-hosted nodes")
    endpoint: Optional[str] = Field(default=None, description="Provider URL prefix")
    api_key: Optional[str] = Field(default=None, description="Infura project id or Alchemy key")
    rate_limit: int = Field(default=constants.UNLIMITED_RATE, description="Calls per second, 0 = unlimited")

    model_config = {"extra": "forbid", "validate_assignment": True}

    @model_validator(mode="after")
    def _check_url(self) -> "NodeConfig":
        if self.kind == ProviderKind.RPC and not self.url:
            raise ValueError(f"Node {self.name}: rpc nodes need a url")
        return self

    def resolved_url(self) -> str:
        """
        Compose the URL to dial.

        Raises:
            ConfigurationError: If a hosted provider has no API key
        """
        if self.kind == ProviderKind.RPC:
            return self.url
        if not self.api_key:
            raise ConfigurationError(f"Missing {self.kind.value}_key for node {self.name}")
        endpoint = self.endpoint or DEFAULT_ENDPOINTS[self.kind]
        return f"{endpoint}{self.api_key}"

    def default_version(self) -> str:
        return DEFAULT_VERSIONS[self.kind]


class MonitorSettings(BaseSettings):
    """Process-wide settings; every field can be overridden by NODEWATCH_<FIELD>."""

    poll_interval: float = Field(default=constants.POLL_INTERVAL, gt=0)
    report_depth: int = Field(default=constants.REPORT_DEPTH, ge=1)
    version_interval: float = Field(default=constants.VERSION_INTERVAL, ge=0)
    rpc_timeout: float = Field(default=constants.RPC_TIMEOUT, gt=0)
    db_url: Optional[str] = Field(default=None, description="SQLAlchemy URL of the header store")
    log_level: str = Field(default="INFO")
    infura_key: Optional[str] = Field(default=None)
    alchemy_key: Optional[str] = Field(default=None)
    api_host: str = Field(default=constants.API_HOST)
    api_port: int = Field(default=constants.API_PORT)

    model_config = SettingsConfigDict(env_prefix="NODEWATCH_", extra="forbid")

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        # NODEWATCH_* variables override values passed in from the config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


class MonitorConfig(BaseModel):
    """A loaded configuration document: nodes plus settings."""

    nodes: List[NodeConfig] = Field(default_factory=list)
    settings: MonitorSettings = Field(default_factory=MonitorSettings)

    def get_node(self, name: str) -> NodeConfig:
        for node in self.nodes:
            if node.name == name:
                return node
        raise ConfigurationError(f"Unknown node: {name}")


def parse_config(data: Dict[str, Any]) -> MonitorConfig:
    """
    Validate a configuration document.

    Hosted-provider nodes without an api_key inherit the matching key from
    the settings (and therefore from NODEWATCH_INFURA_KEY / NODEWATCH_ALCHEMY_KEY).
    Settings in the document are overridden by NODEWATCH_<FIELD> variables.

    Raises:
        ConfigurationError: If the document is invalid
    """
    try:
        settings = MonitorSettings(**(data.get("settings") or {}))
        nodes = [NodeConfig(**entry) for entry in data.get("nodes") or []]
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    names = [node.name for node in nodes]
    if len(names) != len(set(names)):
        raise ConfigurationError(f"Duplicate node names in {names}")

    fallback_keys = {
        ProviderKind.INFURA: settings.infura_key,
        ProviderKind.ALCHEMY: settings.alchemy_key,
    }
    for node in nodes:
        if node.kind in fallback_keys and not node.api_key:
            node.api_key = fallback_keys[node.kind]

    return MonitorConfig(nodes=nodes, settings=settings)


def load_config(path: Union[str, Path]) -> MonitorConfig:
    """Load and validate a JSON configuration file."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must be a JSON object")
    return parse_config(data)
