"""Business-oriented summaries of government announcements"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Config
from ..generator import Generator
from ..helpers import get_logger

TONES = {"professional": "プロフェッショナル", "casual": "カジュアル", "formal": "フォーマル"}
DEFAULT_TITLE = "重要なお知らせについて"
MAX_TITLE_LENGTH = 100
MAX_KEY_POINTS = 5

SYSTEM_PROMPT = """
あなたは経験豊富な社労士です。政府機関の発表内容を、顧問先企業の経営者や人事担当者に向けて分かりやすく要約することが専門です。

以下の要件に従って要約してください：

1. **文字数**: {max_length}文字以内
2. **対象読者**: 企業の経営者・人事担当者
3. **トーン**: {tone}
4. **構成**:
   - 概要（何が変わったか）
   - 企業への影響
   - 対応が必要な事項
   - 施行日・期限等の重要な日付

5. **注意点**:
   - 専門用語は分かりやすく説明
   - 具体的な数値や日付は正確に記載
   - 企業が取るべきアクションを明確に
   - 読みやすい段落構成で
   - 冒頭は「○○について」「○○に関して」などの自然なタイトル形式で始める
   - 「要約」「概要」などの語句は使わない

要約の最後に、3つの重要なポイントを箇条書きで提示してください。
"""

USER_PROMPT = """
以下の政府発表内容を、上記の要件に従って要約してください：

{content}
"""

_TITLE_RE = re.compile(r"(.{10,50}?)(?:[。．\n]|\Z)")
_TITLE_NOISE = [r"^.*?の?要約:?", r"^.*?の?概要:?", r"^要約:?", r"^概要:?"]
_TOPIC_SUFFIX_RE = re.compile(r"(制度|改正|見直し|変更|新設|廃止|施行)$")
_BULLET_PREFIXES = ("・", "•", "-", "1.", "2.", "3.")
_BULLET_RE = re.compile(r"^[・•\-\d.]+\s*")
_KEYWORDS = ("必要", "重要", "注意", "対応")


@dataclass
class Summary:
    summary: str
    title: str
    key_points: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary, "title": self.title, "keyPoints": self.key_points}


def extract_title(summary: str) -> str:
    """Headline from the summary's first sentence, phrased as "...について" """
    match = _TITLE_RE.match(summary)
    if not match:
        return DEFAULT_TITLE

    title = match.group(1).strip()
    for pattern in _TITLE_NOISE:
        title = re.sub(pattern, "", title, flags=re.IGNORECASE)
    title = title.strip()

    if "について" not in title and "に関して" not in title:
        if _TOPIC_SUFFIX_RE.search(title) or "の" in title or len(title) > 5:
            title += "について"

    return title[:MAX_TITLE_LENGTH]


def extract_key_points(summary: str) -> List[str]:
    """Bullet lines, topped up with sentences that call for action"""
    key_points = []
    for line in summary.splitlines():
        line = line.strip()
        if line.startswith(_BULLET_PREFIXES):
            key_points.append(_BULLET_RE.sub("", line))

    if len(key_points) < 3:
        for sentence in re.split(r"[。．]", summary):
            sentence = sentence.strip()
            if 20 < len(sentence) < 100 and any(word in sentence for word in _KEYWORDS):
                key_points.append(sentence)

    return key_points[:MAX_KEY_POINTS]


class Summarizer:
    """Summarizes scraped content through the configured LLM profile"""

    def __init__(self, config: Config, generator: Optional[Generator] = None):
        self.config = config
        self.generator = generator or Generator(config)
        self.profile = config.get("llm.summary_profile")

        self.logger = get_logger("app.summarizer", config)

    def summarize(
        self, content: Any, max_length: Optional[int] = None, tone: Optional[str] = None
    ) -> Summary:
        """Raises ValueError for unusable input, GenerationError on LLM failure"""
        settings = self.config.newsletter
        try:
            max_length = int(max_length or settings.summary_max_length)
        except (TypeError, ValueError) as ex:
            raise ValueError(f"Invalid maxLength: {max_length!r}") from ex
        tone = tone or settings.tone

        if not content or not isinstance(content, str):
            raise ValueError("コンテンツまたはURLが提供されていません")
        if len(content) < settings.min_content_length:
            raise ValueError("コンテンツが短すぎます")
        if not isinstance(tone, str) or tone not in TONES:
            raise ValueError(f"Unknown tone: {tone}")

        text = self.generator.complete(
            self.profile,
            USER_PROMPT.format(content=content),
            system_prompt=SYSTEM_PROMPT.format(max_length=max_length, tone=TONES[tone]),
            options={"max_tokens": min(math.ceil(max_length * 1.5), 4000), "temperature": 0.3},
        ).strip()

        summary = Summary(summary=text, title=extract_title(text), key_points=extract_key_points(text))
        self.logger.info("Summarized %d chars into %d chars", len(content), len(text))
        return summary
