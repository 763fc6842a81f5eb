"""
Id- och token-allokering.

Själva id-schemat är inte kärnans sak: allt som behöver nya id tar emot en
`IdGenerator` (prefix → id). Standardvarianten här ger prefix + slumpdel.
"""

from __future__ import annotations

import secrets
import uuid
from typing import Callable, Iterable, Set

IdGenerator = Callable[[str], str]


def new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def new_share_token() -> str:
    # Ogissningsbar – delningslänken är det enda skyddet för kundvyn
    return secrets.token_urlsafe(16)


def unique_id_generator(id_generator: IdGenerator, taken: Iterable[str], max_attempts: int = 50) -> IdGenerator:
    """
    Wrappar en id-generator så att den aldrig returnerar ett id som redan
    finns i `taken` eller som den själv redan delat ut.
    """
    used: Set[str] = set(taken)

    def _next(prefix: str) -> str:
        for _ in range(max_attempts):
            candidate = id_generator(prefix)
            if candidate not in used:
                used.add(candidate)
                return candidate
        raise RuntimeError(f"Kunde inte allokera unikt id med prefix '{prefix}'")

    return _next
