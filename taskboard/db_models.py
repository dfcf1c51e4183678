from datetime import date
from typing import Optional
from sqlmodel import SQLModel, Field
import time


class StationDB(SQLModel, table=True):
    """Arbeitsstation (Spalte des Boards). Wird extern gepflegt, hier nur gelesen."""

    __tablename__ = "stations"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    sort_order: int = 0
    daily_capacity_hours: float = 8.0


class TaskDB(SQLModel, table=True):
    __tablename__ = "tasks"
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    part_number: Optional[str] = None
    customer: Optional[str] = None
    assignee: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2048)
    due_date: Optional[date] = None
    effort_hours: Optional[float] = None
    status: str = "NEU"
    fai: bool = False
    qs: bool = False
    # Nur die Ordering-Engine verändert station/priority nach dem Anlegen
    station: Optional[str] = Field(default=None, index=True)
    priority: int = 0
    version: int = 0
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)
