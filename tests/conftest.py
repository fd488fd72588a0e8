from typing import List, Optional

import pytest

from aimindmap import AIMindMapServer
from aimindmap.canvas import MindMapCanvas
from aimindmap.config import Config, StorageConfig
from aimindmap.generator import GenerationError
from aimindmap.ideas import IdeaGenerator
from aimindmap.mindmap import Node, new_node
from aimindmap.store import MindMapStore, SQLKeyValueStore


class StubGenerator:
    """Stands in for the LLM Generator: replays a canned answer or raises"""

    def __init__(self, answer: str = "", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[dict] = []

    def complete(self, profile_name, user_prompt, system_prompt=None, options=None):
        self.calls.append(
            {
                "profile": profile_name,
                "user": user_prompt,
                "system": system_prompt,
                "options": options,
            }
        )
        if self.error is not None:
            raise self.error
        return self.answer


def make_node(node_id: str, parent_id: Optional[str]) -> Node:
    return new_node(node_id, parent_id, node_id=node_id)


@pytest.fixture
def config():
    return Config(storage=StorageConfig(path=""))


@pytest.fixture
def store(config):
    return MindMapStore.from_config(config)


@pytest.fixture
def file_backend(tmp_path):
    return SQLKeyValueStore(str(tmp_path / "store.sqlite3"))


@pytest.fixture
def stub_generator():
    return StubGenerator(answer="・アイデア1\n・アイデア2\n・アイデア3\n・アイデア4")


@pytest.fixture
def canvas(config, store, stub_generator):
    return MindMapCanvas.from_config(config, store, IdeaGenerator(config, stub_generator))


@pytest.fixture
def server(config, stub_generator):
    server = AIMindMapServer(config=config)
    server.idea_generator.generator = stub_generator
    server.summarizer.generator = stub_generator
    return server


@pytest.fixture
def client(server):
    return server.app.test_client()


@pytest.fixture
def failing_generator():
    return StubGenerator(error=GenerationError("inference server unreachable"))
