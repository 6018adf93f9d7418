from supabase import Client
from linguapairs.controllers.deck_controller import first_row
from linguapairs.models import Language, LanguagesList
from typing import Optional
import logging

logger = logging.getLogger(__name__)

LANGUAGE_SORT_FIELDS = ("sort_order", "name", "code")


def get_languages(client: Client, sort: str = "sort_order") -> LanguagesList:
    """Active languages only"""
    if sort not in LANGUAGE_SORT_FIELDS:
        sort = "sort_order"

    result = (
        client.table("languages")
        .select("id, code, name, name_native, flag_emoji, sort_order", count="exact")
        .eq("is_active", True)
        .order(sort)
        .execute()
    )
    languages = [Language(**row) for row in (result.data or [])]
    count = result.count if result.count is not None else len(languages)
    return LanguagesList(languages=languages, count=count)


def get_language_by_id(client: Client, language_id: str) -> Optional[Language]:
    """Single active language, or None"""
    result = (
        client.table("languages")
        .select("id, code, name, name_native, flag_emoji, sort_order")
        .eq("id", language_id)
        .eq("is_active", True)
        .maybe_single()
        .execute()
    )
    row = first_row(result)
    return Language(**row) if row else None
