# parser for flashcard json responses
import re
import json
import logging
from typing import List

from .models import Flashcard

logger = logging.getLogger(__name__)

ERROR_QUESTION = "Error parsing AI response"
RAW_PREVIEW_CHARS = 500

CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def _load_json(raw: str):
    text = CODE_FENCE.sub("", raw.strip()).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        block = JSON_BLOCK.search(text)
        if not block:
            raise
        return json.loads(block.group(0))


def parse_flashcards(raw: str) -> List[Flashcard]:
    """Parse a `{"cards": [...]}` response into flashcards.

    When nothing usable comes back a single error card carries the start
    of the raw response so the user can still see what happened.
    """
    try:
        parsed = _load_json(raw)
        cards = parsed.get("cards") if isinstance(parsed, dict) else None
        if not isinstance(cards, list):
            raise ValueError("Invalid response structure")

        valid = [
            Flashcard(question=card["question"], answer=card["answer"])
            for card in cards
            if isinstance(card, dict)
            and isinstance(card.get("question"), str) and card["question"]
            and isinstance(card.get("answer"), str) and card["answer"]
        ]
        if not valid:
            raise ValueError("No valid flashcards generated")

        logger.info(f"✓ Parsed {len(valid)} flashcards")
        return valid

    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        logger.error(f"Error parsing flashcard response: {e}")
        preview = raw[:RAW_PREVIEW_CHARS] + ("..." if len(raw) > RAW_PREVIEW_CHARS else "")
        return [Flashcard(question=ERROR_QUESTION, answer=preview)]
