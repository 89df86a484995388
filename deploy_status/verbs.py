from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

_VOWELS = frozenset("aeiou")


@dataclass(frozen=True, slots=True)
class VerbForms:
    base: str
    continuous: str
    past: str


def conjugate_past(verb: str) -> str:
    # Regular English rules only; irregular verbs need an explicit override.
    if verb.endswith("e"):
        return verb + "d"
    if verb.endswith("y") and len(verb) > 1 and verb[-2] not in _VOWELS:
        return verb[:-1] + "ied"
    return verb + "ed"


def conjugate_continuous(verb: str) -> str:
    if verb.endswith("e"):
        return verb[:-1] + "ing"
    return verb + "ing"


def get_verb_forms(base_verb: str = "deploy", past_override: Optional[str] = None) -> VerbForms:
    base = (base_verb or "deploy").strip().lower()
    past = past_override.strip() if past_override and past_override.strip() else conjugate_past(base)
    return VerbForms(base=base, continuous=conjugate_continuous(base), past=past)


def title_case(text: str) -> str:
    return text[:1].upper() + text[1:]
