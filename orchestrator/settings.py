from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

DEFAULT_CONCURRENCY_LIMIT = 2
DEFAULT_LOG_CAPACITY = 50
DEFAULT_CHART_PATH = "charts/woocommerce-store"
DEFAULT_HOST_TEMPLATE = "{name}.localhost"
DEFAULT_UPGRADE_IMAGE = "wordpress:6.5.0-apache"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://localhost:5173")


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


def _optional_seconds(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-start constants; nothing here changes while the service runs."""

    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    log_capacity: int = DEFAULT_LOG_CAPACITY
    chart_path: str = DEFAULT_CHART_PATH
    host_template: str = DEFAULT_HOST_TEMPLATE
    upgrade_image: str = DEFAULT_UPGRADE_IMAGE
    command_timeout: float | None = None
    helm_bin: str = "helm"
    kubectl_bin: str = "kubectl"
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    def host_for(self, name: str) -> str:
        return self.host_template.format(name=name)

    @classmethod
    def from_env(cls) -> Settings:
        origins = os.getenv("ORCHESTRATOR_CORS_ORIGINS")
        return cls(
            concurrency_limit=_positive_int("ORCHESTRATOR_CONCURRENCY_LIMIT", DEFAULT_CONCURRENCY_LIMIT),
            log_capacity=_positive_int("ORCHESTRATOR_LOG_CAPACITY", DEFAULT_LOG_CAPACITY),
            chart_path=str(Path(os.getenv("ORCHESTRATOR_CHART_PATH", DEFAULT_CHART_PATH)).resolve()),
            host_template=os.getenv("ORCHESTRATOR_HOST_TEMPLATE", DEFAULT_HOST_TEMPLATE),
            upgrade_image=os.getenv("ORCHESTRATOR_UPGRADE_IMAGE", DEFAULT_UPGRADE_IMAGE),
            command_timeout=_optional_seconds("ORCHESTRATOR_COMMAND_TIMEOUT"),
            helm_bin=os.getenv("ORCHESTRATOR_HELM_BIN", "helm"),
            kubectl_bin=os.getenv("ORCHESTRATOR_KUBECTL_BIN", "kubectl"),
            cors_origins=(
                tuple(o.strip() for o in origins.split(",") if o.strip()) if origins else DEFAULT_CORS_ORIGINS
            ),
        )
