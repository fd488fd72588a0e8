import pytest
from langchain_core.messages.chat import ChatMessage

from aimindmap.config import Config, LLMConfig, LLMProfile
from aimindmap.generator import GenerationError, Generator


@pytest.fixture
def generator(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    config = Config(
        llm=LLMConfig(
            default_profile="main",
            profiles={
                "main": LLMProfile(type="openai", default_model="gpt-4o-mini", options={"temperature": 0.7}),
                "claude": LLMProfile(type="anthropic", default_model="claude-sonnet"),
            },
        )
    )
    return Generator(config)


def test_translate_options(generator):
    translated, ignored = generator.translate_options({"num_predict": 10, "top_k": 5, "temperature": 0})
    assert translated == {"max_tokens": 10, "temperature": 0}
    assert ignored == ["top_k"]

    translated, ignored = generator.translate_options({"presence_penalty": 1}, flavor="anthropic")
    assert translated == {}
    assert ignored == ["presence_penalty"]


def test_chatmessages_to_json():
    messages = [ChatMessage(role="system", content="be brief"), ChatMessage(role="user", content="hi")]
    assert Generator._chatmessages_to_json(messages) == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ]


def test_complete_uses_default_profile(generator, monkeypatch):
    calls = []

    def fake_generate(profile_name, model, messages, **kwargs):
        calls.append((profile_name, model, messages, kwargs))
        return "answer"

    monkeypatch.setattr(generator, "_generate_openai", fake_generate)

    assert generator.complete(None, "question", system_prompt="sys", options={"max_tokens": 50}) == "answer"
    profile_name, model, messages, kwargs = calls[0]
    assert profile_name == "main"
    assert model == "gpt-4o-mini"
    assert [m["role"] for m in messages] == ["system", "user"]
    assert kwargs == {"temperature": 0.7, "max_tokens": 50}


def test_anthropic_gets_default_max_tokens(generator, monkeypatch):
    calls = []
    monkeypatch.setattr(
        generator, "_generate_anthropic", lambda *args, **kwargs: calls.append(kwargs) or "answer"
    )

    generator.complete("claude", "question")
    assert calls[0] == {"max_tokens": 4096}


def test_unknown_profile(generator):
    with pytest.raises(GenerationError):
        generator.complete("missing", "question")


def test_no_default_profile():
    with pytest.raises(GenerationError):
        Generator(Config()).complete(None, "question")


def test_empty_response(generator, monkeypatch):
    monkeypatch.setattr(generator, "_generate_openai", lambda *args, **kwargs: "   ")
    with pytest.raises(GenerationError):
        generator.complete(None, "question")


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    config = Config(
        llm=LLMConfig(profiles={"claude": LLMProfile(type="anthropic", default_model="claude-sonnet")})
    )

    with pytest.raises(GenerationError, match="api_key"):
        Generator(config).complete("claude", "question")
