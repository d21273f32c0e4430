from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from relchart.gedcomx import BIRTH, COUPLE, FEMALE, MALE, PARENT_CHILD

GENDERS = {"M": MALE, "F": FEMALE}


class RecordBuilder:
    """Small GedcomX records for tests."""

    def __init__(self) -> None:
        self.data: Dict[str, Any] = {"persons": [], "relationships": []}

    def person(
        self,
        person_id: str,
        name: Optional[str] = None,
        gender: Optional[str] = None,
        principal: bool = False,
        birth: Optional[str] = None,
    ) -> "RecordBuilder":
        person: Dict[str, Any] = {"id": person_id}
        person["names"] = [{"nameForms": [{"fullText": name or person_id.upper()}]}]
        if gender in GENDERS:
            person["gender"] = {"type": GENDERS[gender]}
        if principal:
            person["principal"] = True
        if birth:
            person["facts"] = [{"type": BIRTH, "date": {"original": birth}}]
        self.data["persons"].append(person)
        return self

    def relationship(self, rel_type: str, person1: str, person2: str, **extra: Any) -> "RecordBuilder":
        rel = {"type": rel_type, "person1": {"resource": f"#{person1}"}, "person2": {"resource": f"#{person2}"}}
        rel.update(extra)
        self.data["relationships"].append(rel)
        return self

    def couple(self, husband: str, wife: str, married: Optional[str] = None) -> "RecordBuilder":
        extra = {}
        if married:
            extra["facts"] = [{"type": "http://gedcomx.org/Marriage", "date": {"original": married}}]
        return self.relationship(COUPLE, husband, wife, **extra)

    def parent_child(self, parent: str, child: str) -> "RecordBuilder":
        return self.relationship(PARENT_CHILD, parent, child)

    def family(self, father: str, mother: str, *children: str) -> "RecordBuilder":
        self.couple(father, mother)
        for child in children:
            self.parent_child(father, child)
            self.parent_child(mother, child)
        return self


@pytest.fixture
def record() -> RecordBuilder:
    return RecordBuilder()


@pytest.fixture
def three_generations(record: RecordBuilder) -> RecordBuilder:
    """Grandparents, their two children (one married, one not) and two grandchildren."""

    (
        record.person("gf", "Grandfather", "M")
        .person("gm", "Grandmother", "F")
        .person("dad", "Father", "M", principal=True, birth="1850")
        .person("aunt", "Aunt", "F", birth="1848")
        .person("mom", "Mother", "F")
        .person("kid1", "First Kid", "M", birth="1875")
        .person("kid2", "Second Kid", "F", birth="1878")
    )
    record.family("gf", "gm", "dad", "aunt")
    record.family("dad", "mom", "kid2", "kid1")
    return record
