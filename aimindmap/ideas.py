"""AI suggestions for new child nodes of a mind map node"""

from typing import List, Optional, Sequence

from .config import Config
from .generator import Generator
from .helpers import get_logger
from .mindmap import Node
from .tree import find_node

MAX_IDEAS = 3
BULLET = "・"

IDEAS_PROMPT = """
あなたはマインドマップのアイデア生成AIです。
以下の既存のマインドマップの内容を基に、「{target}」から派生する関連性の高いアイデアを{count}つ生成してください。

既存のマインドマップの内容：
{contents}

注意点：
- 既存のノードと重複しないようにしてください
- 「{target}」と直接関連性のあるアイデアを生成してください
- 各アイデアは簡潔で分かりやすくしてください
- 日本語で回答してください
- 箇条書きで回答してください（「{bullet}」を使用）

アイデア：
"""


def parse_ideas(text: str, limit: int = MAX_IDEAS) -> List[str]:
    """Bullet lines of an LLM answer, without the bullet"""
    ideas = []
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith(BULLET):
            continue
        idea = line[len(BULLET):].strip()
        if idea:
            ideas.append(idea)
    return ideas[:limit]


class IdeaGenerator:
    """Asks the configured LLM for up to three ideas derived from a node"""

    def __init__(self, config: Config, generator: Optional[Generator] = None):
        self.config = config
        self.generator = generator or Generator(config)
        self.profile = config.get("llm.ideas_profile")

        self.logger = get_logger("app.ideas", config)

    def build_prompt(self, nodes: Sequence[Node], target: Node) -> str:
        return IDEAS_PROMPT.format(
            target=target.content,
            count=MAX_IDEAS,
            contents=", ".join(node.content for node in nodes),
            bullet=BULLET,
        )

    def generate(self, nodes: Sequence[Node], target_node_id: str) -> List[str]:
        """Raises KeyError for an unknown target, GenerationError on LLM failure"""
        target = find_node(nodes, target_node_id)
        if target is None:
            raise KeyError(target_node_id)

        text = self.generator.complete(self.profile, self.build_prompt(nodes, target))
        ideas = parse_ideas(text)
        self.logger.info("Generated %d ideas for node %s", len(ideas), target_node_id)
        return ideas
