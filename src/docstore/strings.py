"""
String utility functions for docstore.

English inflection used to derive default inverse relation names
(``Contact.company`` -> ``Company.contacts``) and many-to-many targets
(``Post.tags`` -> ``Tag``).
"""

from __future__ import annotations

import re

# Irregular plurals that don't follow standard rules
_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "tooth": "teeth",
    "foot": "feet",
    "mouse": "mice",
    "goose": "geese",
    "ox": "oxen",
    "leaf": "leaves",
    "life": "lives",
    "knife": "knives",
    "wife": "wives",
    "self": "selves",
    "elf": "elves",
    "loaf": "loaves",
    "potato": "potatoes",
    "tomato": "tomatoes",
    "cactus": "cacti",
    "focus": "foci",
    "fungus": "fungi",
    "nucleus": "nuclei",
    "syllabus": "syllabi",
    "analysis": "analyses",
    "diagnosis": "diagnoses",
    "oasis": "oases",
    "thesis": "theses",
    "crisis": "crises",
    "phenomenon": "phenomena",
    "criterion": "criteria",
    "datum": "data",
}

_IRREGULAR_SINGULARS = {plural: singular for singular, plural in _IRREGULAR_PLURALS.items()}

# Same form in singular and plural
_UNCOUNTABLE = frozenset(
    {
        "sheep",
        "fish",
        "deer",
        "species",
        "series",
        "news",
        "money",
        "information",
        "equipment",
        "rice",
        "knowledge",
        "advice",
        "aircraft",
        "salmon",
        "trout",
        "moose",
        "bison",
    }
)

_F_TO_VES = ("leaf", "life", "knife", "wife", "self", "elf", "loaf", "half", "calf", "shelf", "wolf", "thief")
_O_TO_OES = ("potato", "tomato", "hero", "echo", "torpedo", "veto")


def _preserve_case(original: str, replacement: str) -> str:
    """Apply the case pattern of ``original`` to ``replacement``."""
    if not original:
        return replacement
    if original == original.upper() and original != original.lower():
        return replacement.upper()
    if original[0].isupper():
        return replacement[:1].upper() + replacement[1:].lower()
    return replacement.lower()


def pluralize(word: str) -> str:
    """
    Convert a singular English word to its plural form.

    Handles:
    - Irregular plurals (person -> people)
    - Uncountable nouns (sheep -> sheep)
    - Consonant + y (category -> categories, but key -> keys)
    - Sibilants (box -> boxes, church -> churches)
    - A fixed list of f/fe words (leaf -> leaves, but roof -> roofs)
    - A fixed list of o words (hero -> heroes, but photo -> photos)

    Examples:
        >>> pluralize("Task")
        'Tasks'
        >>> pluralize("Person")
        'People'
        >>> pluralize("company")
        'companies'
    """
    if not word:
        return word

    lower_word = word.lower()

    if lower_word in _UNCOUNTABLE:
        return word

    if lower_word in _IRREGULAR_PLURALS:
        return _preserve_case(word, _IRREGULAR_PLURALS[lower_word])

    if re.search(r"[^aeiou]y$", lower_word):
        return word[:-1] + _preserve_case(word[-1], "ies")

    if lower_word.endswith(("s", "x", "z", "ch", "sh")):
        return word + _preserve_case(word[-1], "es")

    if lower_word in _F_TO_VES:
        if lower_word.endswith("fe"):
            return word[:-2] + _preserve_case(word[-2:], "ves")
        return word[:-1] + _preserve_case(word[-1], "ves")

    if lower_word in _O_TO_OES:
        return word + _preserve_case(word[-1], "es")

    return word + _preserve_case(word[-1], "s")


def singularize(word: str) -> str:
    """
    Convert a plural English word to its singular form.

    Examples:
        >>> singularize("tags")
        'tag'
        >>> singularize("Categories")
        'Category'
        >>> singularize("people")
        'person'
    """
    if not word:
        return word

    lower_word = word.lower()

    if lower_word in _UNCOUNTABLE:
        return word

    if lower_word in _IRREGULAR_SINGULARS:
        return _preserve_case(word, _IRREGULAR_SINGULARS[lower_word])

    if lower_word.endswith("ies"):
        return word[:-3] + _preserve_case(word[-3:], "y")

    if lower_word.endswith("ves"):
        base = lower_word[:-3]
        # life, wife, knife
        if base.endswith(("li", "wi", "kni")):
            return word[:-3] + _preserve_case(word[-3:], "fe")
        return word[:-3] + _preserve_case(word[-3:], "f")

    if re.search(r"(s|x|z|ch|sh)es$", lower_word):
        return word[:-2]

    if lower_word.endswith("oes") and lower_word[:-2] in _O_TO_OES:
        return word[:-2]

    if re.search(r"[^s]s$", lower_word):
        return word[:-1]

    return word


def singularize_relation(word: str) -> str:
    """
    Singular of a many-to-many relation name (``courses`` -> ``course``).

    Narrower than ``singularize``: ``es`` is only dropped after ``ss``, ``x``,
    ``ch`` or ``sh``; otherwise a trailing ``s`` (but not ``ss``) is dropped.
    """
    lower_word = word.lower()
    if lower_word.endswith("ies"):
        return word[:-3] + _preserve_case(word[-3:], "y")
    if lower_word.endswith(("sses", "xes", "ches", "shes")):
        return word[:-2]
    if lower_word.endswith("s") and not lower_word.endswith("ss"):
        return word[:-1]
    return word


def capitalize_first(word: str) -> str:
    """Upper-case the first character only (``postTag`` -> ``PostTag``)."""
    return word[:1].upper() + word[1:]


def lowercase_first(word: str) -> str:
    """Lower-case the first character only (``PostTag`` -> ``postTag``)."""
    return word[:1].lower() + word[1:]
