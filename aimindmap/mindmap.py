"""Mind map data model and its JSON wire format"""

import datetime
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .helpers import utc_now

STORAGE_VERSION = "1.0"
DEFAULT_TITLE = "新しいマインドマップ"
DEFAULT_NODE_CONTENT = "新しいアイデア"


class ThemeColor(str, Enum):
    SUNSHINE = "sunshine"
    BLOSSOM = "blossom"
    OCEAN = "ocean"
    FOREST = "forest"
    LAVENDER = "lavender"
    SUNSET = "sunset"
    MIST = "mist"
    MINT = "mint"


# display name and accent colour of every theme
THEME_COLORS: Dict[ThemeColor, Dict[str, str]] = {
    ThemeColor.SUNSHINE: {"name": "サンシャイン", "accent": "#FCD34D"},
    ThemeColor.BLOSSOM: {"name": "ブロッサム", "accent": "#FB7185"},
    ThemeColor.OCEAN: {"name": "オーシャン", "accent": "#60A5FA"},
    ThemeColor.FOREST: {"name": "フォレスト", "accent": "#34D399"},
    ThemeColor.LAVENDER: {"name": "ラベンダー", "accent": "#A78BFA"},
    ThemeColor.SUNSET: {"name": "サンセット", "accent": "#F59E0B"},
    ThemeColor.MIST: {"name": "ミスト", "accent": "#64748B"},
    ThemeColor.MINT: {"name": "ミント", "accent": "#14B8A6"},
}


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls.model_validate(data)


class TimestampedModel(WireModel):
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime.datetime) -> datetime.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value

    @field_serializer("created_at", "updated_at")
    def _serialize_date(self, value: datetime.datetime) -> str:
        value = value.astimezone(datetime.timezone.utc)
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Position(WireModel):
    x: float = 0
    y: float = 0


class Node(TimestampedModel):
    """A single idea of a mind map. parent_id None marks the root."""

    id: str
    content: str
    parent_id: Optional[str]
    color: ThemeColor = ThemeColor.OCEAN
    position: Position = Field(default_factory=Position)
    is_ai_generated: bool = False


class MindMap(TimestampedModel):
    id: str
    title: str
    nodes: List[Node] = Field(default_factory=list)
    theme: ThemeColor = ThemeColor.OCEAN

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class Preferences(WireModel):
    default_theme: ThemeColor = ThemeColor.OCEAN
    auto_save: bool = True


class StorageData(WireModel):
    version: str = STORAGE_VERSION
    mindmaps: List[MindMap] = Field(default_factory=list)
    # may point to no existing map: treated as "no current map"
    current_map_id: str = ""
    preferences: Preferences = Field(default_factory=Preferences)


def new_node(
    content: str,
    parent_id: Optional[str],
    color: ThemeColor = ThemeColor.OCEAN,
    is_ai_generated: bool = False,
    node_id: Optional[str] = None,
    position: Optional[Position] = None,
) -> Node:
    now = utc_now()
    return Node(
        id=node_id or new_id("node"),
        content=content,
        parent_id=parent_id,
        color=color,
        position=position or Position(),
        created_at=now,
        updated_at=now,
        is_ai_generated=is_ai_generated,
    )
