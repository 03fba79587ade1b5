"""Pydantic models for API requests/responses."""

from pydantic import BaseModel, Field


class ModifyRequest(BaseModel):
    """Request to set, increment or decrement a command's value."""

    operator: str | None = Field(default=None, description="One of '=', '+', '-'")
    value: str | None = Field(default=None, description="Value for the '=' operator")


class QueryResponse(BaseModel):
    """Current value of a command."""

    command: str = Field(..., description="Command name")
    value: str | None = Field(..., description="Value reported by the receiver")


class ModifyResponse(BaseModel):
    """Result of a set/modify request."""

    command: str = Field(..., description="Command name")
    operator: str = Field(..., description="Operator applied")
    value: str | None = Field(..., description="Value after the change")


class CommandInfo(BaseModel):
    """Registry entry of an available command."""

    name: str
    operators: list[str]
    description: str
    example: str
    values: list[str] | dict[str, int] | None = None


class CommandListResponse(BaseModel):
    """Commands available on the connected receiver."""

    commands: list[CommandInfo]
    total: int


class DeviceStatusResponse(BaseModel):
    """Receiver connection status."""

    host: str = Field(..., description="Receiver host")
    port: int = Field(..., description="Telnet port")
    connected: bool = Field(..., description="Whether the receiver is connected")
    model: str | None = Field(default=None, description="Model from the greeting")
    introspected: bool = Field(default=False, description="Whether introspection ran")
    supported_commands: list[str] | None = Field(default=None, description="Discovered commands")
    available_commands: list[str] = Field(default_factory=list, description="Routable commands")
    reconnect_count: int = Field(default=0, description="Reconnects since start")


class ServiceStatusResponse(BaseModel):
    """Service status response."""

    running: bool = Field(..., description="Whether service is running")
    device: DeviceStatusResponse = Field(..., description="Receiver status")
    health_check_running: bool = Field(..., description="Whether health checks run")
    last_health_check: float | None = Field(default=None, description="Last healthy probe (epoch)")
