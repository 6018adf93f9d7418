"""
LinguaPairs Backend - LLM pair generation provider
Calls an OpenAI-compatible chat API (OpenRouter) with a strict JSON schema
response format and validates the reply before handing pairs back.
"""

from linguapairs.config import get_settings
from linguapairs.errors import GenerationOutputError
from linguapairs.models import GeneratedPair
from linguapairs.pair_schema import (
    SCHEMA_NAME,
    PairItemOutput,
    build_pair_generation_json_schema,
    parse_pair_generation_output,
)
from linguapairs.constants import PAIR_TERM_MAX_WORDS
from linguapairs.prompts import (
    LanguageSpec,
    build_system_message,
    build_text_user_message,
    build_topic_user_message,
    few_shot_messages,
)
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import hashlib
import json
import logging
import re
import time
import unicodedata
import uuid
import openai

logger = logging.getLogger(__name__)

INFERENCE_PARAMS = {"temperature": 0.4, "top_p": 0.9, "max_tokens": 12800}


@dataclass
class ProviderResult:
    pairs: List[GeneratedPair]
    metadata: Dict[str, Any] = field(default_factory=dict)
    prompt_hash: str = ""


def normalize_term(value: str) -> str:
    """Lowercase ASCII-folded form used for duplicate and banlist checks"""
    decomposed = unicodedata.normalize("NFD", value.replace("ł", "l").replace("Ł", "L"))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()
    stripped = re.sub(r"[^a-z0-9\s]", "", stripped)
    return " ".join(stripped.split())


def enforce_word_limit(value: str, max_words: int = PAIR_TERM_MAX_WORDS) -> str:
    return " ".join(value.split()[:max_words])


def hash_record(data: Dict[str, Any]) -> str:
    return hashlib.sha256(json.dumps(data, sort_keys=True, ensure_ascii=False).encode("utf-8")).hexdigest()


def hash_list(items: Optional[Iterable[str]]) -> Optional[str]:
    normalized = sorted(filter(None, (normalize_term(i) for i in items or [])))
    if not normalized:
        return None
    return hashlib.sha256("|".join(normalized).encode("utf-8")).hexdigest()


class PairGenerationProvider:
    """Generates translation pairs with a primary model and an optional fallback"""

    def __init__(
        self,
        client: openai.OpenAI,
        primary_model: str,
        fallback_model: Optional[str] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.id_factory = id_factory
        self.clock = clock

    def generate_from_topic(
        self,
        topic_id: str,
        topic_label: str,
        content_type: str,
        register: str,
        count: int,
        lang_a: LanguageSpec,
        lang_b: LanguageSpec,
        banlist: Optional[List[str]] = None,
    ) -> ProviderResult:
        user_message = build_topic_user_message(
            topic_id, topic_label, content_type, register, count, lang_a, lang_b, banlist
        )
        seed = {
            "kind": "topic",
            "topic_id": topic_id,
            "content_type": content_type,
            "register": register,
            "count": count,
            "langA": lang_a.code,
            "langB": lang_b.code,
            "banlist_hash": hash_list(banlist),
        }
        return self._run(count, lang_a, lang_b, register, user_message, seed, banlist)

    def generate_from_text(
        self,
        text: str,
        content_type: str,
        register: str,
        count: int,
        lang_a: LanguageSpec,
        lang_b: LanguageSpec,
        banlist: Optional[List[str]] = None,
    ) -> ProviderResult:
        user_message = build_text_user_message(text, content_type, register, count, lang_a, lang_b, banlist)
        seed = {
            "kind": "text",
            "text_hash": hashlib.sha256(text.encode("utf-8")).hexdigest(),
            "content_type": content_type,
            "register": register,
            "count": count,
            "langA": lang_a.code,
            "langB": lang_b.code,
            "banlist_hash": hash_list(banlist),
        }
        return self._run(count, lang_a, lang_b, register, user_message, seed, banlist)

    def _run(
        self,
        count: int,
        lang_a: LanguageSpec,
        lang_b: LanguageSpec,
        register: str,
        user_message: Dict[str, str],
        seed: Dict[str, Any],
        banlist: Optional[List[str]],
    ) -> ProviderResult:
        schema = build_pair_generation_json_schema(count)
        messages = [build_system_message(lang_a, lang_b, register), *few_shot_messages(), user_message]

        start = self.clock()
        raw_pairs, model = self._invoke_with_fallback(messages, schema, count)
        duration_ms = max(0, int((self.clock() - start) * 1000))

        pairs = self.normalize_pairs(raw_pairs, banlist)
        prompt_hash = hash_record(seed)
        return ProviderResult(
            pairs=pairs,
            metadata={
                "generation_time_ms": duration_ms,
                "cache_hit": False,
                "prompt_hash": prompt_hash,
                "ai_model": model,
                "excluded_count": max(0, len(raw_pairs) - len(pairs)),
            },
            prompt_hash=prompt_hash,
        )

    def _invoke_with_fallback(
        self, messages: List[Dict[str, str]], schema: Dict[str, Any], count: int
    ) -> Tuple[List[PairItemOutput], str]:
        try:
            return self._call_model(self.primary_model, messages, schema, count), self.primary_model
        except (openai.OpenAIError, GenerationOutputError) as e:
            if not self.fallback_model or self.fallback_model == self.primary_model:
                raise
            logger.warning(f"Primary model {self.primary_model} failed, using fallback {self.fallback_model}: {e}")
            return self._call_model(self.fallback_model, messages, schema, count), self.fallback_model

    def _call_model(
        self, model: str, messages: List[Dict[str, str]], schema: Dict[str, Any], count: int
    ) -> List[PairItemOutput]:
        response = self.client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "strict": True, "schema": schema},
            },
            **INFERENCE_PARAMS,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationOutputError(f"Empty response from {model}")

        return parse_pair_generation_output(content, count).pairs

    def normalize_pairs(self, pairs: List[PairItemOutput], banlist: Optional[List[str]] = None) -> List[GeneratedPair]:
        """Trim, cap word count, drop banned and duplicate pairs"""
        banned = set(filter(None, (normalize_term(term) for term in banlist or [])))
        seen = set()
        result: List[GeneratedPair] = []

        for pair in pairs:
            term_a = enforce_word_limit(pair.term_a)
            term_b = enforce_word_limit(pair.term_b)
            norm_a, norm_b = normalize_term(term_a), normalize_term(term_b)
            if not norm_a or not norm_b:
                continue
            if norm_a in banned or norm_b in banned:
                continue
            key = (norm_a, norm_b)
            if key in seen:
                continue
            seen.add(key)

            result.append(GeneratedPair(
                id=self.id_factory(),
                term_a=term_a,
                term_b=term_b,
                type=pair.type,
                register=pair.register_,
            ))

        return result


@lru_cache()
def get_ai_provider() -> PairGenerationProvider:
    """Dependency to get the shared generation provider"""
    settings = get_settings()
    client = openai.OpenAI(api_key=settings.openrouter_api_key, base_url=settings.openrouter_base_url)
    return PairGenerationProvider(
        client=client,
        primary_model=settings.pair_model,
        fallback_model=settings.pair_fallback_model,
    )
