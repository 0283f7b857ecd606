"""Configuration for one provisioning run, read from CDK context and the environment."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_ECR_REPOSITORY_URI = "361769583226.dkr.ecr.us-east-1.amazonaws.com/fdx-dev-app-repo"
SECRET_INPUTS = frozenset({"db_password"})
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ProvisioningConfig:
    org: str = "fxd"
    environment: str = "dev"
    account: Optional[str] = None
    region: str = "us-east-1"
    log_level: str = "INFO"

    @classmethod
    def from_context(cls, app: Any) -> "ProvisioningConfig":
        """Build the config from CDK context, then env vars, then defaults"""

        def lookup(context_key: str, env_key: str, default: Optional[str]) -> Optional[str]:
            return app.node.try_get_context(context_key) or os.getenv(env_key, default)

        log_level = lookup("logLevel", "LOG_LEVEL", cls.log_level).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                f"Unsupported log level '{log_level}' from logLevel context or LOG_LEVEL; "
                f"expected one of {', '.join(LOG_LEVELS)}"
            )

        return cls(
            org=lookup("org", "ORG", cls.org),
            environment=lookup("environment", "APP_ENV", cls.environment),
            account=lookup("account", "CDK_DEFAULT_ACCOUNT", None),
            region=lookup("region", "CDK_DEFAULT_REGION", cls.region),
            log_level=log_level,
        )

    @property
    def prefix(self) -> str:
        return f"{self.org}-{self.environment}"

    def resource_name(self, *parts: str) -> str:
        return "-".join((self.prefix,) + parts)

    @property
    def tags(self) -> Dict[str, str]:
        return {"Organization": self.org, "Environment": self.environment}


def external_inputs_from_env() -> Dict[str, str]:
    """Values supplied to the stack graph from outside it"""
    return {
        "ecr_repository_uri": os.getenv("ECR_REPOSITORY_URI", DEFAULT_ECR_REPOSITORY_URI),
        "db_username": os.getenv("DB_USERNAME", "postgres"),
        "db_password": os.getenv("DB_PASSWORD", "default"),
    }


def redact(external_values: Dict[str, Any]) -> Dict[str, Any]:
    """Mask secret inputs before they are logged or written to the audit plan"""
    return {
        name: "********" if name in SECRET_INPUTS else value
        for name, value in external_values.items()
    }
