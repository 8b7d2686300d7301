"""
Configuration management for the Cofre conformance harness.
"""

import os
from dataclasses import dataclass, field
from typing import Dict

PYTHON_SPEC_CLIENT = "python-spec"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


@dataclass
class ClientConfig:
    """Configuration for a single HTTP implementation endpoint."""
    name: str
    endpoint: str
    enabled: bool = True
    timeout: float = 30.0


@dataclass
class HarnessConfig:
    """Main configuration for the conformance harness."""
    # HTTP endpoints compared against the in-process Python spec
    clients: Dict[str, ClientConfig] = field(default_factory=dict)

    # Paths
    vector_dir: str = "vectors"
    result_dir: str = "conformance/results"

    # Execution settings
    stop_on_first_failure: bool = False
    verbose: bool = False
    # Check the Python spec against the expectations recorded in each vector
    check_expected: bool = True

    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables.

        An endpoint is only registered when its variable is set, so a bare
        run replays vectors against the Python spec alone.
        """
        config = cls()
        config.request_timeout = float(os.environ.get("REQUEST_TIMEOUT", config.request_timeout))

        for key, env_var, label in (
            ("reference", "REFERENCE_ENDPOINT", "Reference program"),
            ("program", "PROGRAM_ENDPOINT", "Program under test"),
        ):
            endpoint = os.environ.get(env_var)
            if endpoint:
                config.clients[key] = ClientConfig(
                    name=label,
                    endpoint=endpoint,
                    timeout=config.request_timeout,
                )

        config.vector_dir = os.environ.get("VECTOR_DIR", config.vector_dir)
        config.result_dir = os.environ.get("RESULT_DIR", config.result_dir)
        config.verbose = _env_flag("VERBOSE")
        config.stop_on_first_failure = _env_flag("STOP_ON_FIRST_FAILURE")
        return config

    def set_endpoint(self, key: str, label: str, endpoint: str) -> None:
        self.clients[key] = ClientConfig(name=label, endpoint=endpoint, timeout=self.request_timeout)

    def get_enabled_clients(self) -> Dict[str, ClientConfig]:
        """Get only enabled client configurations."""
        return {
            name: client
            for name, client in self.clients.items()
            if client.enabled
        }
