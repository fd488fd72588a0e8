import os
import threading
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from .config import Config
from .helpers import ensure_directories_exist, get_logger, utc_now
from .mindmap import (
    DEFAULT_TITLE,
    MindMap,
    Position,
    Preferences,
    StorageData,
    new_id,
    new_node,
)
from .tree import validate_tree

MindMapUpdater = Callable[[MindMap], MindMap]


class SQLKeyValueStore:
    """
    Durable string key -> string value storage in a single SQLite table
    * Lazily connects on first use
    * An empty path gives volatile, in-memory storage
    """

    def __init__(self, db_path: str, table_name: str = "kv_store", config: Optional[Config] = None):
        self.db_path = db_path
        self._db_connection = None

        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column("key", String, primary_key=True),
            Column("value", Text, nullable=False),
        )

        self.logger = get_logger("app.kvstore", config)

    @property
    def db_connection(self):
        """Lazy setup of db connection"""
        if self._db_connection:
            return self._db_connection
        self._db_connection = self._setup_db_connection(self.db_path)
        return self._db_connection

    def _setup_db_connection(self, db_path: str):
        """Set up a persistent connection to DB and create the table"""
        if len(db_path) == 0:
            self.logger.warning("No storage path was found in config, using volatile, memory storage!")
            engine = create_engine(
                "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        else:
            if "://" not in db_path:
                ensure_directories_exist(db_path)
                db_path = "sqlite:///" + os.path.expanduser(db_path)
            self.logger.info(f"Opening DB file {db_path}")
            engine = create_engine(db_path)

        self.metadata.create_all(engine)
        return engine

    def get(self, key: str) -> Optional[str]:
        with Session(self.db_connection) as session:
            stmt = select(self.table.c.value).where(self.table.c.key == key)
            return session.execute(stmt).scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        with Session(self.db_connection) as session:
            result = session.execute(
                update(self.table).where(self.table.c.key == key).values(value=value)
            )
            if result.rowcount == 0:
                session.execute(insert(self.table).values(key=key, value=value))
            session.commit()


class MindMapStore:
    """
    Owns every mind map, the current map selection and user preferences
    * Loaded once from the key-value backend, falling back to empty data
    * Every mutation is written back before returning
    * Persistence failures are logged; the in-memory state keeps serving
    """

    def __init__(
        self,
        backend: SQLKeyValueStore,
        key: str = "aimindmap_data",
        config: Optional[Config] = None,
        center: Optional[Position] = None,
    ):
        self.backend = backend
        self.key = key
        self.center = center or Position(x=400, y=300)

        self.logger = get_logger("app.store", config)
        self.lock = threading.RLock()

        self.data = self.load()

    @classmethod
    def from_config(cls, config: Config) -> "MindMapStore":
        return cls(
            SQLKeyValueStore(config.storage.path, config=config),
            key=config.storage.key,
            config=config,
            center=Position(x=config.layout.center_x, y=config.layout.center_y),
        )

    def load(self) -> StorageData:
        """Read the stored blob; absent or corrupt data yields an empty default"""
        try:
            raw = self.backend.get(self.key)
        except SQLAlchemyError as ex:
            self.logger.error("Error reading storage key '%s': %s", self.key, ex)
            return StorageData()

        if raw is None:
            self.logger.info("No stored data under '%s', starting empty", self.key)
            return StorageData()

        try:
            return StorageData.model_validate_json(raw)
        except ValidationError as ex:
            self.logger.warning("Stored data under '%s' is invalid, starting empty: %s", self.key, ex)
            return StorageData()

    def save(self) -> bool:
        """Write the full blob back; False if the backend failed"""
        try:
            self.backend.set(self.key, self.data.model_dump_json(by_alias=True))
        except SQLAlchemyError as ex:
            self.logger.error("Error writing storage key '%s': %s", self.key, ex)
            return False
        return True

    def list_mind_maps(self) -> List[MindMap]:
        return list(self.data.mindmaps)

    def get_mind_map(self, map_id: str) -> Optional[MindMap]:
        for mind_map in self.data.mindmaps:
            if mind_map.id == map_id:
                return mind_map
        return None

    def get_current_mind_map(self) -> Optional[MindMap]:
        if not self.data.current_map_id:
            return None
        return self.get_mind_map(self.data.current_map_id)

    def create_mind_map(self, title: str = DEFAULT_TITLE) -> MindMap:
        """New map holding a single root node; becomes the current map"""
        theme = self.data.preferences.default_theme
        root = new_node(title, None, color=theme, position=self.center.model_copy())
        mind_map = MindMap(
            id=new_id("mindmap"),
            title=title,
            nodes=[root],
            theme=theme,
            created_at=root.created_at,
            updated_at=root.created_at,
        )

        with self.lock:
            self.data.mindmaps.append(mind_map)
            self.data.current_map_id = mind_map.id
            self.save()

        self.logger.info("Created mind map %s (%s)", mind_map.id, title)
        return mind_map

    def select_mind_map(self, map_id: str) -> Optional[MindMap]:
        with self.lock:
            mind_map = self.get_mind_map(map_id)
            if mind_map is None:
                return None
            self.data.current_map_id = map_id
            self.save()
        return mind_map

    def update_current_mind_map(self, updater: MindMapUpdater) -> Optional[MindMap]:
        """Replace the current map with updater(copy of it); no-op without a current map"""
        with self.lock:
            current = self.get_current_mind_map()
            if current is None:
                return None

            updated = updater(current.model_copy(deep=True))
            updated = updated.model_copy(update={"updated_at": utc_now()})

            idx = next(i for i, m in enumerate(self.data.mindmaps) if m.id == current.id)
            self.data.mindmaps[idx] = updated
            self.save()

        return updated

    def delete_mind_map(self, map_id: str) -> bool:
        with self.lock:
            mind_map = self.get_mind_map(map_id)
            if mind_map is None:
                return False
            self.data.mindmaps.remove(mind_map)
            if self.data.current_map_id == map_id:
                self.data.current_map_id = ""
            self.save()

        self.logger.info("Deleted mind map %s", map_id)
        return True

    def import_mind_map(self, data: Dict[str, Any]) -> MindMap:
        """Add an exported map under a fresh id and make it current.

        Raises ValueError (pydantic's ValidationError or TreeValidationError)
        for data that is not a single well-formed tree.
        """
        mind_map = MindMap.from_dict(data)
        validate_tree(mind_map.nodes)
        mind_map = mind_map.model_copy(update={"id": new_id("mindmap"), "updated_at": utc_now()})

        with self.lock:
            self.data.mindmaps.append(mind_map)
            self.data.current_map_id = mind_map.id
            self.save()

        self.logger.info("Imported mind map %s (%s)", mind_map.id, mind_map.title)
        return mind_map

    def export_mind_map(self, map_id: str) -> Optional[str]:
        mind_map = self.get_mind_map(map_id)
        if mind_map is None:
            return None
        return mind_map.model_dump_json(by_alias=True, indent=2)

    def update_preferences(self, **partial) -> Preferences:
        """Shallow merge; accepts both snake_case and camelCase keys"""
        with self.lock:
            merged = self.data.preferences.model_dump()
            known = set()
            for name, field in Preferences.model_fields.items():
                for key in (name, field.alias):
                    if key in partial:
                        merged[name] = partial[key]
                        known.add(key)

            unknown = set(partial) - known
            if unknown:
                raise ValueError(f"Unknown preferences: {sorted(unknown)}")

            self.data.preferences = Preferences.model_validate(merged)
            self.save()

        return self.data.preferences
