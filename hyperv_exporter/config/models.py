"""Pydantic configuration models for the exporter."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Literal, Optional
import re


DEFAULT_COLLECTORS = ["os", "health", "vid", "hv", "processor", "switch", "ethernet"]


class ServerConfig(BaseModel):
    """HTTP endpoint the scraper pulls from."""
    listen_address: str = "0.0.0.0"
    port: int = Field(default=9182, ge=1, le=65535)
    metrics_path: str = "/metrics"

    @field_validator('metrics_path')
    @classmethod
    def validate_metrics_path(cls, v: str) -> str:
        """Metrics path must be absolute and must not shadow the health endpoint."""
        if not v.startswith('/'):
            raise ValueError('metrics_path must start with /')
        if v in ('/', '/health'):
            raise ValueError(f'metrics_path cannot be {v}')
        return v


class SSHHostConfig(BaseModel):
    """Remote Hyper-V host reached over OpenSSH."""
    host: str
    port: int = 22
    username: str = "Administrator"
    ssh_key_path: Optional[str] = None
    password: Optional[str] = None


class SourceConfig(BaseModel):
    """Counter source (where WMI queries are executed)."""
    type: Literal["local", "ssh"] = "local"
    namespace: str = "root\\cimv2"
    query_timeout_seconds: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=2, ge=1, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0)
    ssh: Optional[SSHHostConfig] = None

    @field_validator('namespace')
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """WMI namespace is placed on a command line, keep it to path characters."""
        if not re.match(r'^[A-Za-z0-9_\\/]+$', v):
            raise ValueError('Invalid WMI namespace')
        return v

    @model_validator(mode='after')
    def ssh_requires_host(self) -> 'SourceConfig':
        """An ssh source needs host settings."""
        if self.type == "ssh" and self.ssh is None:
            raise ValueError('source.ssh is required when source.type is "ssh"')
        return self


class CollectorsConfig(BaseModel):
    """Which collectors run on each scrape."""
    enabled: List[str] = Field(default_factory=lambda: list(DEFAULT_COLLECTORS))
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    @field_validator('enabled')
    @classmethod
    def no_duplicates(cls, v: List[str]) -> List[str]:
        """Each collector may be enabled once."""
        if len(set(v)) != len(v):
            raise ValueError('Collector enabled more than once')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    collectors: CollectorsConfig = Field(default_factory=CollectorsConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
