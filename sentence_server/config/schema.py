"""Pydantic schema for sentence server configuration validation."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ServerConfigSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8080, ge=0, le=65535, description="Server TCP port")
    listen_backlog: int = Field(default=10, ge=1)
    buffer_size: int = Field(default=4096, ge=64, le=1_048_576)
    max_value_length: int = Field(default=256, ge=1)
    max_connections: int = Field(default=100, ge=1)
    use_thread_pool: bool = True
    thread_pool_max: int = Field(default=100, ge=1)
    client_timeout: float = Field(
        default=0.0, ge=0, description="Per-connection socket timeout, 0 blocks forever"
    )
    read_full_body: bool = Field(
        default=False, description="Read until the declared Content-Length arrives"
    )
    max_body_size: int = Field(default=65536, ge=1)
    escape_json_values: bool = Field(
        default=False, description="JSON-escape echoed values"
    )

    @model_validator(mode="after")
    def _value_fits_buffer(self) -> ServerConfigSchema:
        if self.max_value_length >= self.buffer_size:
            raise ValueError("max_value_length must be smaller than buffer_size")
        return self

    @model_validator(mode="after")
    def _admission_fits_pool(self) -> ServerConfigSchema:
        # Queued pool work is dropped on shutdown; every admitted connection
        # needs a worker.
        if self.use_thread_pool and self.max_connections > self.thread_pool_max:
            raise ValueError("max_connections must not exceed thread_pool_max")
        return self


class SecurityConfigSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")
    max_connections_per_ip: int = Field(default=20, ge=1)


class LoggingConfigSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="")

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class MonitoringConfigSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")
    enabled: bool = False
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=9108, ge=0, le=65535)


class SentenceConfigSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")
    server: ServerConfigSchema = Field(default_factory=ServerConfigSchema)
    security: SecurityConfigSchema = Field(default_factory=SecurityConfigSchema)
    logging: LoggingConfigSchema = Field(default_factory=LoggingConfigSchema)
    monitoring: MonitoringConfigSchema = Field(default_factory=MonitoringConfigSchema)


def validate_config_file(payload: dict) -> SentenceConfigSchema:
    """Validate configuration payload with Pydantic schema."""

    return SentenceConfigSchema(**payload)
