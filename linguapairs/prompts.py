"""
LinguaPairs Backend - Prompt builders for pair generation
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import json

EXCERPT_MAX_CHARS = 300
BANLIST_MAX_ITEMS = 240


@dataclass(frozen=True)
class LanguageSpec:
    code: str  # e.g. "pl"
    name: str  # e.g. "Polish"


def clip(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1].rstrip() + "…"


def normalize_banlist(items: Optional[Iterable[str]], limit: int = BANLIST_MAX_ITEMS) -> List[str]:
    """Trimmed, case-insensitively unique terms, at most ``limit`` of them"""
    seen = set()
    result: List[str] = []
    for raw in items or []:
        if not raw:
            continue
        trimmed = " ".join(raw.split())
        if not trimmed:
            continue
        canonical = trimmed.lower()
        if canonical in seen:
            continue
        seen.add(canonical)
        result.append(trimmed)
        if len(result) >= limit:
            break
    return result


def build_system_message(lang_a: LanguageSpec, lang_b: LanguageSpec, register: str) -> Dict[str, str]:
    content = "\n".join([
        f"You are a bilingual lexicographer and teacher. Generate translation pairs {lang_a.name} ↔ {lang_b.name}.",
        "Return ONLY JSON matching the provided schema. No prose, no comments.",
        "Rules: per-side ≤ 8 words; no quotes or numbering; deduplicate meanings (including inflections/synonyms).",
        f"register={register}; type in {{words|phrases|mini-phrases}}; for auto use 60/30/10 distribution.",
        f"term_a in {lang_a.code}, term_b in {lang_b.code}.",
    ])
    return {"role": "system", "content": content}


def few_shot_messages() -> List[Dict[str, str]]:
    example = {
        "pairs": [
            {"term_a": "przykład", "term_b": "example", "type": "words", "register": "neutral"},
            {"term_a": "dziękuję bardzo", "term_b": "thank you very much", "type": "phrases", "register": "neutral"},
        ]
    }
    return [{"role": "assistant", "content": json.dumps(example, ensure_ascii=False, separators=(",", ":"))}]


def _common_lines(content_type: str, register: str, count: int, lang_a: LanguageSpec, lang_b: LanguageSpec) -> List[str]:
    return [
        f"content_type={content_type}, register={register}, count={count}",
        f"A={lang_a.code}, B={lang_b.code}",
    ]


def build_topic_user_message(
    topic_id: str,
    topic_label: str,
    content_type: str,
    register: str,
    count: int,
    lang_a: LanguageSpec,
    lang_b: LanguageSpec,
    banlist: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    lines = [f"Topic: {topic_id} ({topic_label})"]
    lines += _common_lines(content_type, register, count, lang_a, lang_b)
    avoid = normalize_banlist(banlist)
    if avoid:
        lines.append(f"Avoid: {', '.join(avoid)}")
    return {"role": "user", "content": "\n".join(lines)}


def build_text_user_message(
    text: str,
    content_type: str,
    register: str,
    count: int,
    lang_a: LanguageSpec,
    lang_b: LanguageSpec,
    banlist: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    lines = [f"Context: {clip(text, EXCERPT_MAX_CHARS)}"]
    lines += _common_lines(content_type, register, count, lang_a, lang_b)
    avoid = normalize_banlist(banlist)
    if avoid:
        lines.append(f"Avoid: {', '.join(avoid)}")
    return {"role": "user", "content": "\n".join(lines)}
