from enum import Enum

from pydantic import BaseModel, ConfigDict

# --- Repository ---

class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    resource_type: str | None = None

class Template(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    has_structure_support: bool = False

class Page(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    template: Template | None = None

# --- References ---

class Reference(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource_path: str
    last_modified: int  # epoch millis
    # Informational only, never part of identity
    name: str = ""
    type: str = ""

# --- Replication ---

class PublishStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivered: bool = False
    activated: bool = False
    last_published: int | None = None  # epoch millis

    @property
    def published(self) -> bool:
        return self.delivered or self.activated

class ReplicationAction(str, Enum):
    ACTIVATE = "Activate"
    DEACTIVATE = "Deactivate"
    DELETE = "Delete"
