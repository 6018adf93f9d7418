"""
LinguaPairs Backend - Shared constants
"""

from typing import Dict

# Challenge mode
CHALLENGE_ROUNDS = 3
CHALLENGE_PAIRS_PER_ROUND = 5
CHALLENGE_REQUIRED_PAIRS = CHALLENGE_ROUNDS * CHALLENGE_PAIRS_PER_ROUND
CHALLENGE_MAX_LEADERBOARD = 10
CHALLENGE_LEADERBOARD_CAP = 50
CHALLENGE_VERSION = "v1"
CHALLENGE_MAX_TIME_MS = 60 * 60 * 1000
CHALLENGE_MAX_ANSWERS = 50
CHALLENGE_MAX_ROUND_TIMES = 10
DEMO_LEADERBOARD_LIMIT = 30
ANONYMOUS_PLAYER_NAME = "Anonimowy gracz"
OWN_PLAYER_NAME = "Ty"

# Pagination
PAIRS_DEFAULT_PAGE_SIZE = 50
PAIRS_MAX_PAGE_SIZE = 200
DECKS_DEFAULT_PAGE_SIZE = 20
DECKS_MAX_PAGE_SIZE = 100

# Generation
DAILY_GENERATION_LIMIT = 3
BASE_GENERATION_COUNT = 50
PAIR_TERM_MAX_LENGTH = 64
PAIR_TERM_MAX_WORDS = 8

PAIR_TYPES = ("words", "phrases", "mini-phrases")
PAIR_REGISTERS = ("neutral", "informal", "formal")

TOPIC_LABELS: Dict[str, str] = {
    "travel": "Podróże i Turystyka",
    "business": "Biznes",
    "food": "Jedzenie i Picie",
    "technology": "Technologia",
    "health": "Zdrowie",
    "education": "Edukacja",
    "shopping": "Zakupy",
    "family": "Rodzina",
    "hobbies": "Hobby",
    "sports": "Sport",
    "nature": "Przyroda",
    "culture": "Kultura",
    "emotions": "Emocje",
    "time": "Czas",
    "weather": "Pogoda",
    "transport": "Transport",
    "communication": "Komunikacja",
    "home": "Dom",
    "work": "Praca",
    "emergency": "Sytuacje Awaryjne",
}


def get_topic_label(topic_id: str) -> str:
    return TOPIC_LABELS.get(topic_id, topic_id)
