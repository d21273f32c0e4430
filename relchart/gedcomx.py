"""GedcomX record vocabulary and field helpers."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

COUPLE = "http://gedcomx.org/Couple"
PARENT_CHILD = "http://gedcomx.org/ParentChild"

MALE = "http://gedcomx.org/Male"
FEMALE = "http://gedcomx.org/Female"

GENDER_MALE = "M"
GENDER_FEMALE = "F"
GENDER_UNKNOWN = "U"

BIRTH = "http://gedcomx.org/Birth"
CHRISTENING = "http://gedcomx.org/Christening"
BAPTISM = "http://gedcomx.org/Baptism"

# (male, female, neutral) labels for person1's point of view, then person2's.
RELATIVE_LABELS: Dict[str, Tuple[str, ...]] = {
    "Couple": ("Husband", "Wife", "Spouse"),
    "ParentChild": ("Father", "Mother", "Parent", "Son", "Daughter", "Child"),
    "StepParentChild": ("Stepfather", "Stepmother", "Stepparent", "Stepson", "Stepdaughter", "Stepchild"),
    "ParentChildInLaw": (
        "Father-in-law",
        "Mother-in-law",
        "Parent-in-law",
        "Son-in-law",
        "Daughter-in-law",
        "Child-in-law",
    ),
    "SurrogateParentChild": (
        "Surrogate father",
        "Surrogate mother",
        "Surrogate parent",
        "Surrogate son",
        "Surrogate daughter",
        "Surrogate child",
    ),
    "AuntOrUncle": ("Uncle", "Aunt", "Aunt Or Uncle", "Nephew", "Niece", "Niece Or Nephew"),
    "Godparent": ("Godfather", "Godmother", "Godparent", "Godson", "Goddaughter", "Godchild"),
    "Sibling": ("Brother", "Sister", "Sibling"),
    "Fiance": ("Fiancé", "Fiancée", "Fiancé"),
    "Grandparent": ("Grandfather", "Grandmother", "Grandparent", "Grandson", "Granddaughter", "Grandchild"),
    "GreatGrandparent": (
        "Great-grandfather",
        "Great-grandmother",
        "Great-grandparent",
        "Great-grandson",
        "Great-granddaughter",
        "Great-grandchild",
    ),
    "SiblingInLaw": ("Brother-in-law", "Sister-in-law", "Sibling-in-Law"),
    "StepSibling": ("Stepbrother", "Stepsister", "Stepsibling"),
    "AncestorDescendant": ("Ancestor", "Ancestor", "Ancestor", "Descendant", "Descendant", "Descendant"),
}

_YEAR = re.compile(r"(\d\d\d\d)")
_CAPITAL = re.compile(r"([A-Z])")


def base_name(uri: str) -> str:
    """``http://gedcomx.org/MarriageBanns`` -> ``MarriageBanns``."""
    return uri.rsplit("/", 1)[-1]


def split_type(uri: Optional[str]) -> str:
    """Turn a type URI into words, e.g. ``MarriageBanns`` -> ``Marriage Banns``."""
    if not uri:
        return "Other"
    return _CAPITAL.sub(r" \1", base_name(uri)).strip()


def gender_code(person: Mapping[str, Any]) -> str:
    gender = person.get("gender") or {}
    gender_type = gender.get("type") if isinstance(gender, dict) else None
    if gender_type == MALE:
        return GENDER_MALE
    if gender_type == FEMALE:
        return GENDER_FEMALE
    return GENDER_UNKNOWN


def full_names(person: Mapping[str, Any]) -> List[str]:
    """All full-text name forms of a person, in record order."""

    names: List[str] = []
    for name in person.get("names") or []:
        if not isinstance(name, dict):
            continue
        for form in name.get("nameForms") or []:
            if not isinstance(form, dict):
                continue
            text = form.get("fullText")
            if text:
                names.append(text)
    return names


def first_full_name(person: Mapping[str, Any]) -> str:
    names = full_names(person)
    return names[0] if names else "?"


def fact_info(fact: Mapping[str, Any]) -> Optional[str]:
    """Value, date and place of a fact joined by ``"; "``, or ``None``."""

    parts = [fact.get("value"), _original(fact.get("date")), _original(fact.get("place"))]
    parts = [part for part in parts if part]
    return "; ".join(parts) if parts else None


def _original(field: Any) -> Optional[str]:
    if isinstance(field, dict):
        return field.get("original")
    return None


def fact_lines(container: Optional[Mapping[str, Any]], qualifier: Optional[str] = None) -> List[str]:
    """Display lines such as ``"Birth (father): 1820; Vermont"``."""

    lines: List[str] = []
    if not container:
        return lines
    for fact in container.get("facts") or []:
        if not isinstance(fact, dict):
            continue
        info = fact_info(fact)
        if info:
            label = split_type(fact.get("type"))
            if qualifier:
                label += f" ({qualifier})"
            lines.append(f"{label}: {info}")
    return lines


def fact_year(fact: Mapping[str, Any]) -> Optional[int]:
    date = _original(fact.get("date"))
    if date:
        match = _YEAR.search(date)
        if match:
            return int(match.group(1))
    return None


def birth_year(person: Optional[Mapping[str, Any]]) -> Optional[int]:
    """Birth year, falling back to the last christening or baptism year."""

    best = None
    if not person:
        return best
    for fact in person.get("facts") or []:
        if not isinstance(fact, dict):
            continue
        fact_type = fact.get("type")
        if fact_type == BIRTH:
            year = fact_year(fact)
            if year:
                return year
        elif fact_type in (CHRISTENING, BAPTISM):
            year = fact_year(fact)
            if year:
                best = year
    return best


def relative_label(rel_type: str, relative_gender: str, reverse: bool = False) -> str:
    """Label for a relative given the relationship type and their gender code.

    In a ``Grandparent`` relationship person1 is the grandparent of person2.
    ``reverse`` selects person2's side of the relationship (Grandson, ...).
    """

    labels = RELATIVE_LABELS.get(base_name(rel_type))
    if not labels:
        return split_type(rel_type)
    if reverse and len(labels) > 3:
        labels = labels[3:]
    if relative_gender == GENDER_MALE:
        return labels[0]
    if relative_gender == GENDER_FEMALE:
        return labels[1]
    return labels[2]


__all__ = [
    "BAPTISM",
    "BIRTH",
    "CHRISTENING",
    "COUPLE",
    "FEMALE",
    "MALE",
    "PARENT_CHILD",
    "GENDER_MALE",
    "GENDER_FEMALE",
    "GENDER_UNKNOWN",
    "RELATIVE_LABELS",
    "base_name",
    "birth_year",
    "fact_info",
    "fact_lines",
    "fact_year",
    "first_full_name",
    "full_names",
    "gender_code",
    "relative_label",
    "split_type",
]
