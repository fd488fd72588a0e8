import copy
import os
from typing import Any, Dict, List, Optional, Tuple

import openai
from anthropic import Anthropic, AnthropicError
from langchain_core.messages.chat import ChatMessage

from .config import Config, LLMProfile, ProviderType
from .helpers import get_logger, merge_dicts

API_KEY_ENV = {
    ProviderType.OPENAI: "OPENAI_API_KEY",
    ProviderType.AZURE_OPENAI: "AZURE_OPENAI_API_KEY",
    ProviderType.ANTHROPIC: "ANTHROPIC_API_KEY",
}


class GenerationError(Exception):
    """The LLM provider could not produce a completion"""


class Generator:
    """Handle API connections and text generations using LLM providers"""

    def __init__(self, config: Config):
        self.config = config

        self.logger = get_logger("app.generator", config)

        self._clients: Dict[str, Any] = {}

    def _load_profile(self, profile_name) -> LLMProfile:
        profile = self.config.get("llm.profiles", default={}).get(profile_name, None)
        if profile is None:
            raise ValueError(f"Profile '{profile_name}' not found in config")
        return profile

    def _get_profile(self, profile_name) -> Tuple[str, LLMProfile]:
        if profile_name is None:  # try default profile
            profile_name = self.config.get("llm.default_profile")
            if profile_name is None:
                raise ValueError("No default profile defined")

        return profile_name, self._load_profile(profile_name)

    @staticmethod
    def _api_key(profile: LLMProfile) -> str:
        api_key = profile.get("config.api_key") or os.getenv(API_KEY_ENV[profile.type])
        if api_key is None:
            raise ValueError(f"api_key for {profile.type.value} profile not found in config or environment!")
        return api_key

    def _get_azure_openai_client(self, profile: LLMProfile):
        base_url = profile.get("config.base_url")
        api_version = profile.get("config.api_version", "2024-08-01-preview")

        if base_url is None:
            raise ValueError("base_url for Azure profile not found in config!")

        return openai.AzureOpenAI(
            azure_endpoint=base_url, api_key=self._api_key(profile), api_version=api_version
        )

    def _get_openai_client(self, profile: LLMProfile):
        return openai.OpenAI(api_key=self._api_key(profile), base_url=profile.get("config.base_url"))

    def _get_anthropic_client(self, profile: LLMProfile):
        return Anthropic(api_key=self._api_key(profile), base_url=profile.get("config.base_url"))

    def _get_client(self, profile_name):
        if profile_name in self._clients:
            return self._clients[profile_name]

        _, profile = self._get_profile(profile_name)

        if profile.type == ProviderType.AZURE_OPENAI:
            self._clients[profile_name] = self._get_azure_openai_client(profile)
        elif profile.type == ProviderType.OPENAI:
            self._clients[profile_name] = self._get_openai_client(profile)
        elif profile.type == ProviderType.ANTHROPIC:
            self._clients[profile_name] = self._get_anthropic_client(profile)
        else:
            raise ValueError(f"Uknown profile type: '{profile.type}'")

        return self._clients[profile_name]

    def _generate_openai(self, profile_name: str, model: str, messages: List[Dict], **kwargs) -> str:
        client = self._get_client(profile_name)
        response = client.chat.completions.create(model=model, messages=messages, **kwargs)
        return response.choices[0].message.content or ""

    def _generate_anthropic(self, profile_name: str, model: str, messages: List[Dict], **kwargs) -> str:
        client = self._get_client(profile_name)

        system = None
        # Anthropic accepts system messages in a different way
        if messages and messages[0]["role"] == "system":
            system = messages[0]["content"]
            messages = messages[1:]

        if system is not None:
            kwargs["system"] = system

        response = client.messages.create(model=model, messages=messages, **kwargs)
        return "".join(block.text for block in response.content if block.type == "text")

    def translate_options(self, options: Dict[str, Any], flavor: str = "openai"):
        """Translate keys in options dict to OpenAI/Anthropic compatible keys
        Anything not found in mapping will be ignored!
        """
        mapping = {}
        if flavor == "openai":
            mapping = {
                "temperature": "temperature",
                "num_predict": "max_tokens",
                "max_tokens": "max_tokens",
                "top_p": "top_p",
                "presence_penalty": "presence_penalty",
                "frequency_penalty": "frequency_penalty",
            }
        elif flavor == "anthropic":
            mapping = {
                "temperature": "temperature",
                "num_predict": "max_tokens",
                "max_tokens": "max_tokens",
                "top_p": "top_p",
            }

        ignored = []
        translated = {}
        for key, val in options.items():
            if key in mapping:
                translated[mapping[key]] = val
            else:
                ignored.append(key)

        return translated, ignored

    @staticmethod
    def _chatmessages_to_json(messages: List[ChatMessage]):
        """Convert langchain message format to JSON compatible with APIs"""
        return [{"role": msg.role, "content": copy.copy(msg.content)} for msg in messages]

    def generate(
        self,
        profile_name: Optional[str],
        messages: List[ChatMessage],
        options: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        """Main function, generates text based on messages"""
        try:
            profile_name, profile = self._get_profile(profile_name)
        except ValueError as ex:
            raise GenerationError(str(ex)) from ex

        if model is None:
            model = profile.default_model

        options = merge_dicts(profile.options, options)
        api_messages = self._chatmessages_to_json(messages)

        self.logger.info(
            "profile:%s // service:%s // model:%s // options:%s",
            profile_name,
            profile.type.value,
            model,
            options,
        )

        try:
            if profile.type == ProviderType.ANTHROPIC:
                translated_options, ignored_options = self.translate_options(options, flavor="anthropic")
                translated_options.setdefault("max_tokens", 4096)
                generate = self._generate_anthropic
            else:
                translated_options, ignored_options = self.translate_options(options)
                generate = self._generate_openai

            if len(ignored_options):
                self.logger.debug("Ignored options in the request: %s", ignored_options)

            text = generate(profile_name, model, api_messages, **translated_options)
        except (ValueError, openai.OpenAIError, AnthropicError) as ex:
            self.logger.error("Error requesting inference server: %s", ex)
            raise GenerationError(f"Error requesting inference server: {ex}") from ex

        if not text.strip():
            raise GenerationError("Inference server returned an empty response")
        return text

    def complete(
        self,
        profile_name: Optional[str],
        user_prompt: str,
        system_prompt: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Single-turn generation from a system and a user prompt"""
        messages = []
        if system_prompt:
            messages.append(ChatMessage(content=system_prompt, role="system"))
        messages.append(ChatMessage(content=user_prompt, role="user"))
        return self.generate(profile_name, messages, options)
