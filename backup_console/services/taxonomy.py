from __future__ import annotations

from typing import Iterable, NamedTuple, Optional


class ClassLevel:
    NURSERY = "NURSERY"
    KG = "KG"
    PRIMARY = "PRIMARY"
    JHS = "JHS"
    CLASS = "CLASS"


class ClassInfo(NamedTuple):
    id: str
    name: str
    level: Optional[str] = None


CLASSES_LIST = (
    ClassInfo("c_n1", "Nursery 1"),
    ClassInfo("c_n2", "Nursery 2"),
    ClassInfo("c_kg1", "KG 1"),
    ClassInfo("c_kg2", "KG 2"),
    ClassInfo("c_p1", "Class 1"),
    ClassInfo("c_p2", "Class 2"),
    ClassInfo("c_p3", "Class 3"),
    ClassInfo("c_p4", "Class 4"),
    ClassInfo("c_p5", "Class 5"),
    ClassInfo("c_p6", "Class 6"),
    ClassInfo("c_jhs1", "JHS 1"),
    ClassInfo("c_jhs2", "JHS 2"),
    ClassInfo("c_jhs3", "JHS 3"),
)

PREFIX_LEVELS = (
    ("c_n", ClassLevel.NURSERY),
    ("c_kg", ClassLevel.KG),
    ("c_p", ClassLevel.PRIMARY),
    ("c_jhs", ClassLevel.JHS),
)


class ClassTaxonomy:
    def __init__(self, catalog: Iterable[ClassInfo] = CLASSES_LIST):
        self._catalog = {entry.id: entry for entry in catalog}

    def lookup(self, class_id) -> Optional[ClassInfo]:
        if not isinstance(class_id, str):
            return None
        return self._catalog.get(class_id)

    def resolve(self, class_id) -> str:
        """Education level for ``class_id``: catalog level, then prefix, then CLASS."""
        if not class_id or not isinstance(class_id, str):
            return ClassLevel.CLASS
        info = self.lookup(class_id)
        if info and info.level:
            return info.level
        for prefix, level in PREFIX_LEVELS:
            if class_id.startswith(prefix):
                return level
        return ClassLevel.CLASS

    def display_name(self, class_id) -> str:
        info = self.lookup(class_id)
        if info:
            return info.name
        return str(class_id) if class_id else ""


default_taxonomy = ClassTaxonomy()


def resolve_level(class_id) -> str:
    return default_taxonomy.resolve(class_id)


def class_name(class_id) -> str:
    return default_taxonomy.display_name(class_id)
