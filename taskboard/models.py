from datetime import date
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TaskCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, validation_alias=AliasChoices("title", "bezeichnung"))
    station: str = Field(min_length=1, validation_alias=AliasChoices("station", "arbeitsstation"))
    part_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("part_number", "teilenummer"))
    customer: Optional[str] = Field(default=None, validation_alias=AliasChoices("customer", "kunde"))
    assignee: Optional[str] = Field(default=None, validation_alias=AliasChoices("assignee", "zustaendig"))
    notes: Optional[str] = Field(default=None, max_length=2048, validation_alias=AliasChoices("notes", "zusaetzlicheInfos"))
    due_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("due_date", "endDatum"))
    effort_hours: Optional[float] = Field(default=None, ge=0, validation_alias=AliasChoices("effort_hours", "aufwandStunden"))
    status: str = "NEU"
    fai: bool = False
    qs: bool = False


class TaskUpdateRequest(BaseModel):
    """Teil-Update. station/priority werden bewusst nicht angenommen; dafür gibt es /tasks/sort."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, validation_alias=AliasChoices("title", "bezeichnung"))
    part_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("part_number", "teilenummer"))
    customer: Optional[str] = Field(default=None, validation_alias=AliasChoices("customer", "kunde"))
    assignee: Optional[str] = Field(default=None, validation_alias=AliasChoices("assignee", "zustaendig"))
    notes: Optional[str] = Field(default=None, max_length=2048, validation_alias=AliasChoices("notes", "zusaetzlicheInfos"))
    due_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("due_date", "endDatum"))
    effort_hours: Optional[float] = Field(default=None, ge=0, validation_alias=AliasChoices("effort_hours", "aufwandStunden"))
    status: Optional[str] = None
    fai: Optional[bool] = None
    qs: Optional[bool] = None


class TaskStatusRequest(BaseModel):
    status: str = Field(min_length=1)


# Die drei historischen Payload-Formate des Sort-Endpunkts


class MoveTaskPayload(BaseModel):
    """Neues Frontend: ``{taskId, to, toIndex, from}``."""

    task_id: int = Field(validation_alias=AliasChoices("taskId", "task_id"))
    to: Optional[Union[int, str]] = None
    to_index: Optional[int] = Field(default=None, ge=0, validation_alias=AliasChoices("toIndex", "to_index"))
    from_station: Optional[str] = Field(default=None, validation_alias=AliasChoices("from", "from_station"))


class StationOrderPayload(BaseModel):
    """Spalten-Resort: ``{arbeitsstationId, orderedIds}`` bzw. ältere Aliasse ``{columnId, order}``."""

    station_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("arbeitsstationId", "columnId", "stationId"))
    station: Optional[str] = None
    ordered_ids: List[int] = Field(min_length=1, validation_alias=AliasChoices("orderedIds", "order"))


class BulkSortItem(BaseModel):
    """Element des Listen-Formats ``[{id, arbeitsstation, prioritaet, ...}, ...]``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    station: str = Field(min_length=1, validation_alias=AliasChoices("arbeitsstation", "station"))
