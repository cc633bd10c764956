"""Topic translation table used to localize stock-media search queries.

Articles are written in Russian while the stock library is indexed in
English, so query tokens are mapped to English topic phrases before they
reach the media provider. The table is plain data; deployments extend or
override it with a JSON file (``TOPIC_TRANSLATIONS_FILE``).
"""

import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_TRANSLATIONS: dict[str, str] = {
    # Health and medicine
    "здоровье": "health medical",
    "спорт": "sport fitness",
    "бег": "running jogging",
    "жара": "summer heat weather",
    "сердце": "heart cardio medical",
    "тренировка": "workout training gym",
    "питание": "nutrition food healthy",
    "болезнь": "illness disease medical",
    "врач": "doctor medical hospital",
    "лекарство": "medicine pharmacy medical",
    "марафон": "marathon running",
    # Science
    "исследование": "research science laboratory",
    "ученые": "scientists research laboratory",
    "наука": "science research technology",
    "эксперимент": "experiment laboratory science",
    "данные": "data analysis research",
    # Places
    "алматы": "almaty kazakhstan city urban",
    "казахстан": "kazakhstan central asia",
    "астана": "astana nur-sultan kazakhstan",
    "город": "city urban buildings",
    "улица": "street road urban",
    "парк": "park nature green",
    "горы": "mountains landscape nature",
    # Environment
    "загрязнение": "pollution environment ecology",
    "воздух": "air pollution environment",
    "экология": "ecology environment nature",
    "природа": "nature landscape environment",
    "климат": "climate weather environment",
    "мусор": "waste garbage pollution",
    # Education
    "образование": "education school university",
    "школа": "school education children",
    "университет": "university college education",
    "студенты": "students university education",
    "учеба": "study education learning",
    "экзамен": "exam test education",
    "дети": "children kids family",
    # Technology
    "технологии": "technology innovation digital",
    "ии": "artificial intelligence AI technology",
    "компьютер": "computer technology digital",
    "интернет": "internet technology digital",
    "смартфон": "smartphone mobile technology",
    "приложение": "app mobile technology",
    "искусственный интеллект": "artificial intelligence AI",
    "инновации": "innovation technology",
    # Politics
    "дебаты": "debate discussion politics",
    "политика": "politics government society",
    "выборы": "elections voting politics",
    "правительство": "government politics official",
    "закон": "law legal government",
    # Society and economy
    "молодежь": "youth young people",
    "семья": "family people home",
    "работа": "work office business",
    "бизнес": "business office corporate",
    "деньги": "money finance business",
    "стартап": "startup business",
    "платформа": "platform technology",
    # Culture
    "культура": "culture art tradition",
    "искусство": "art culture creative",
    "музыка": "music concert performance",
    "театр": "theater performance culture",
    "кино": "cinema movie entertainment",
    "фестиваль": "festival celebration culture",
    # Transport
    "транспорт": "transport traffic urban",
    "автомобиль": "car vehicle traffic",
    "автобус": "bus public transport",
    "метро": "subway metro transport",
    "дорога": "road traffic transport",
    # Food
    "еда": "food restaurant cooking",
    "ресторан": "restaurant food dining",
    "кафе": "cafe coffee restaurant",
    "готовка": "cooking food kitchen",
    # Seasons and weather
    "зима": "winter snow cold",
    "лето": "summer sun hot",
    "весна": "spring flowers nature",
    "осень": "autumn fall leaves",
    "дождь": "rain weather storm",
    "снег": "snow winter cold",
}


class TopicTranslator:
    """Whole-word lookup and replacement over a topic translation table."""

    def __init__(self, table: dict[str, str] | None = None):
        source = DEFAULT_TOPIC_TRANSLATIONS if table is None else table
        self.table = {key.lower(): value for key, value in source.items() if key and value}
        # Longer phrases first so "искусственный интеллект" wins over single words
        keys = sorted(self.table, key=len, reverse=True)
        self._pattern = (
            re.compile(r"\b(" + "|".join(re.escape(k) for k in keys) + r")\b", re.IGNORECASE)
            if keys
            else None
        )

    def lookup(self, token: str) -> str | None:
        """Return the topic phrase for a single token or phrase, if any."""
        return self.table.get(token.strip().lower())

    def translate(self, text: str) -> str:
        """Lowercase ``text`` and replace every known token with its topic phrase."""
        lowered = text.lower()
        if self._pattern is None:
            return lowered
        return self._pattern.sub(lambda m: self.table[m.group(1).lower()], lowered)


def load_topic_translations(path: str | Path | None = None) -> dict[str, str]:
    """Build the translation table, merging an optional JSON override file.

    Args:
        path: JSON file holding a flat ``{"token": "topic phrase"}`` object

    Returns:
        Merged table; file entries override the defaults. A missing file
        leaves the defaults in place.

    Raises:
        ValueError: If the file exists but is unreadable or malformed
    """
    table = dict(DEFAULT_TOPIC_TRANSLATIONS)
    if not path:
        return table

    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"Topic translations file {file_path} not found, using built-in table")
        return table

    try:
        with open(file_path, encoding="utf-8") as f:
            extra = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Cannot load topic translations from {file_path}: {e}") from e

    if not isinstance(extra, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in extra.items()
    ):
        raise ValueError(f"Topic translations file {file_path} must map strings to strings")

    table.update({k.lower(): v for k, v in extra.items()})
    logger.info(f"Loaded {len(extra)} topic translations from {file_path}")
    return table
