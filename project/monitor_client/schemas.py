"""
Pydantic v2 models, one per response shape the dashboard consumes.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MachineStatusValue = Literal["online", "offline", "maintenance", "error"]
AlertType = Literal["temperature", "door", "speed", "maintenance", "other"]
AlertSeverity = Literal["low", "medium", "high", "critical"]
Role = Literal["admin", "technician", "viewer"]


class ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LoginResult(ApiModel):
    token: str = Field(min_length=1)
    userId: int
    username: str
    role: Role


class User(ApiModel):
    id: int
    username: str
    role: Role
    is_active: bool


class Machine(ApiModel):
    id: int
    name: str
    model: str
    type: str
    serial_number: str
    location: str
    last_service: datetime


class SensorReading(ApiModel):
    id: int | None = None
    machine: int
    temperature1: float
    temperature2: float
    temperature3: float
    temperature4: float
    speed1: float
    speed2: float
    speed3: float
    speed4: float
    door1_state: bool
    door2_state: bool
    timestamp: datetime

    @property
    def temperatures(self) -> list[float]:
        return [self.temperature1, self.temperature2, self.temperature3, self.temperature4]

    @property
    def speeds(self) -> list[float]:
        return [self.speed1, self.speed2, self.speed3, self.speed4]


class MachineStatus(ApiModel):
    id: int | None = None
    machine: int
    status: MachineStatusValue
    changed_by: int | None = None
    changed_by_username: str | None = None
    timestamp: datetime


class Alert(ApiModel):
    id: int
    machine: int
    machine_name: str | None = None
    type: AlertType
    severity: AlertSeverity
    message: str
    is_active: bool
    created_at: datetime
    resolved_at: datetime | None = None
