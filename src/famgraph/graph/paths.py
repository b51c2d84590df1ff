"""Path-expression algebra for kinship terms.

A path is a dot-separated walk from ego over four primitives:

    P  one parent-edge hop up
    C  one child-edge hop down
    S  lateral move to a sibling (shared parent or explicit sibling edge)
    M  spouse hop ("mate")

``P.P`` is a grandparent, ``P.S`` an aunt or uncle, ``P.S.C`` a first
cousin. The canonical form replaces every adjacent ``P.C`` with ``S``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from ..models import Gender


class Step(str, Enum):
    P = "P"
    C = "C"
    S = "S"
    M = "M"

    @property
    def generation_delta(self) -> int:
        return {"P": 1, "C": -1}.get(self.value, 0)


class KinshipClass(NamedTuple):
    """Result of :meth:`PathExpr.classify`.

    ``degree`` is the cousin degree for cousins and the generation distance
    for direct lines, aunts/uncles and nieces/nephews. ``removed`` is only
    non-zero for cousins.
    """

    kind: str
    degree: int
    removed: int


@dataclass(frozen=True)
class PathExpr:
    steps: tuple[Step, ...] = ()

    # -- construction -----------------------------------------------------

    @classmethod
    def parse(cls, text: str | PathExpr) -> PathExpr:
        if isinstance(text, PathExpr):
            return text
        text = (text or "").strip().upper()
        if not text:
            return cls(())
        try:
            return cls(tuple(Step(part.strip()) for part in text.split(".")))
        except ValueError as exc:
            raise ValueError(f"invalid path expression: {text!r}") from exc

    @classmethod
    def up(cls, n: int) -> PathExpr:
        return cls((Step.P,) * n)

    @classmethod
    def down(cls, n: int) -> PathExpr:
        return cls((Step.C,) * n)

    def __str__(self) -> str:
        return ".".join(s.value for s in self.steps)

    def __add__(self, other: PathExpr) -> PathExpr:
        return PathExpr(self.steps + other.steps)

    def __len__(self) -> int:
        return len(self.steps)

    # -- algebra ----------------------------------------------------------

    def canonical(self) -> PathExpr:
        steps = list(self.steps)
        changed = True
        while changed:
            changed = False
            for i in range(len(steps) - 1):
                if steps[i] is Step.P and steps[i + 1] is Step.C:
                    steps[i : i + 2] = [Step.S]
                    changed = True
                    break
        return PathExpr(tuple(steps))

    @property
    def generation_offset(self) -> int:
        """Generations above ego (negative = below)."""
        return sum(s.generation_delta for s in self.steps)

    def classify(self) -> KinshipClass:
        steps = self.canonical().steps
        text = str(PathExpr(steps))
        if not steps:
            return KinshipClass("self", 0, 0)
        if Step.M in steps:
            kind = _IN_LAW_KINDS.get(text, "relative")
            return KinshipClass(kind, 0, 0)

        # blood paths of the shape P^a [S] C^b
        i = 0
        while i < len(steps) and steps[i] is Step.P:
            i += 1
        ups = i
        lateral = i < len(steps) and steps[i] is Step.S
        if lateral:
            i += 1
        downs = 0
        while i < len(steps) and steps[i] is Step.C:
            i += 1
            downs += 1
        if i != len(steps):
            return KinshipClass("relative", 0, 0)

        if not lateral:
            if downs == 0:
                return KinshipClass("ancestor", ups, 0)
            if ups == 0:
                return KinshipClass("descendant", downs, 0)
            return KinshipClass("relative", 0, 0)

        up, down = ups + 1, downs + 1
        if up == 1 and down == 1:
            return KinshipClass("sibling", 1, 0)
        if down == 1:
            return KinshipClass("aunt_uncle", up - 1, 0)
        if up == 1:
            return KinshipClass("niece_nephew", down - 1, 0)
        return KinshipClass("cousin", min(up, down) - 1, abs(up - down))

    def label(self, locale: str = "en", gender: Gender | str | None = None) -> str:
        g = Gender(gender) if gender else Gender.UNKNOWN
        kc = self.classify()
        if locale == "ru":
            return _label_ru(kc, g)
        return _label_en(kc, g)


def compose(up: PathExpr | int, down: PathExpr | int) -> PathExpr:
    """Join an ego->ancestor segment with an ancestor->relative segment."""
    if isinstance(up, int):
        up = PathExpr.up(up)
    if isinstance(down, int):
        down = PathExpr.down(down)
    return (up + down).canonical()


_IN_LAW_KINDS = {
    "M": "spouse",
    "M.P": "parent_in_law",
    "C.M": "child_in_law",
    "M.S": "spouse_sibling",
    "S.M": "sibling_spouse",
    "P.M": "step_parent",
    "M.C": "step_child",
}


# --------------------------------------------------------------------------
# English labels
# --------------------------------------------------------------------------

_ORDINALS_EN = {
    1: "First", 2: "Second", 3: "Third", 4: "Fourth", 5: "Fifth",
    6: "Sixth", 7: "Seventh", 8: "Eighth", 9: "Ninth", 10: "Tenth",
}


def _pick(g: Gender, male: str, female: str, neutral: str) -> str:
    if g is Gender.MALE:
        return male
    if g is Gender.FEMALE:
        return female
    return neutral


def _greats(n: int, base: str) -> str:
    return ("great-" * n + base).capitalize()


def _label_en(kc: KinshipClass, g: Gender) -> str:
    kind, degree, removed = kc
    if kind == "self":
        return "Self"
    if kind == "ancestor":
        if degree == 1:
            return _pick(g, "Father", "Mother", "Parent")
        return _greats(degree - 2, _pick(g, "grandfather", "grandmother", "grandparent"))
    if kind == "descendant":
        if degree == 1:
            return _pick(g, "Son", "Daughter", "Child")
        return _greats(degree - 2, _pick(g, "grandson", "granddaughter", "grandchild"))
    if kind == "sibling":
        return _pick(g, "Brother", "Sister", "Sibling")
    if kind == "aunt_uncle":
        return _greats(degree - 1, _pick(g, "uncle", "aunt", "aunt/uncle"))
    if kind == "niece_nephew":
        base = _pick(g, "nephew", "niece", "nephew/niece")
        if degree == 1:
            return base.capitalize()
        return _greats(degree - 2, "grand" + base)
    if kind == "cousin":
        ordinal = _ORDINALS_EN.get(degree)
        if ordinal is None:
            return "Distant Relative"
        base = f"{ordinal} Cousin"
        return f"{base}, {removed}x removed" if removed else base
    if kind == "spouse":
        return _pick(g, "Husband", "Wife", "Spouse")
    if kind == "parent_in_law":
        return _pick(g, "Father-in-law", "Mother-in-law", "Parent-in-law")
    if kind == "child_in_law":
        return _pick(g, "Son-in-law", "Daughter-in-law", "Child-in-law")
    if kind in ("spouse_sibling", "sibling_spouse"):
        return _pick(g, "Brother-in-law", "Sister-in-law", "Sibling-in-law")
    if kind == "step_parent":
        return _pick(g, "Stepfather", "Stepmother", "Step-parent")
    if kind == "step_child":
        return _pick(g, "Stepson", "Stepdaughter", "Stepchild")
    return "Relative"


# --------------------------------------------------------------------------
# Russian labels
# --------------------------------------------------------------------------

_COUSIN_RU = {
    1: ("Двоюродный брат", "Двоюродная сестра", "Двоюродный брат/сестра"),
    2: ("Троюродный брат", "Троюродная сестра", "Троюродный брат/сестра"),
    3: ("Четвероюродный брат", "Четвероюродная сестра", "Четвероюродный брат/сестра"),
}


def _pra(n: int, word: str) -> str:
    return ("пра" * n + word).capitalize()


def _label_ru(kc: KinshipClass, g: Gender) -> str:
    kind, degree, removed = kc
    if kind == "self":
        return "Я"
    if kind == "ancestor":
        if degree == 1:
            return _pick(g, "Отец", "Мать", "Родитель")
        return _pick(
            g,
            _pra(degree - 2, "дедушка"),
            _pra(degree - 2, "бабушка"),
            _pra(degree - 2, "дедушка/бабушка"),
        )
    if kind == "descendant":
        if degree == 1:
            return _pick(g, "Сын", "Дочь", "Ребёнок")
        return _pick(g, _pra(degree - 2, "внук"), _pra(degree - 2, "внучка"), _pra(degree - 2, "внук/внучка"))
    if kind == "sibling":
        return _pick(g, "Брат", "Сестра", "Брат/Сестра")
    if kind == "aunt_uncle":
        if degree == 1:
            return _pick(g, "Дядя", "Тётя", "Дядя/Тётя")
        return _pick(
            g,
            "Двоюродный " + _pra(degree - 2, "дедушка").lower(),
            "Двоюродная " + _pra(degree - 2, "бабушка").lower(),
            "Двоюродный " + _pra(degree - 2, "дедушка/бабушка").lower(),
        )
    if kind == "niece_nephew":
        if degree == 1:
            return _pick(g, "Племянник", "Племянница", "Племянник/Племянница")
        prefix_m = _pra(degree - 2, "внучатый").capitalize()
        prefix_f = _pra(degree - 2, "внучатая").capitalize()
        return _pick(g, f"{prefix_m} племянник", f"{prefix_f} племянница", f"{prefix_m} племянник/племянница")
    if kind == "cousin":
        forms = _COUSIN_RU.get(degree)
        if forms is None:
            return "Дальний родственник"
        base = _pick(g, *forms)
        return f"{base}, {removed} колено" if removed else base
    if kind == "spouse":
        return _pick(g, "Муж", "Жена", "Супруг(а)")
    if kind == "parent_in_law":
        return _pick(g, "Отец супруга", "Мать супруга", "Родитель супруга")
    if kind == "child_in_law":
        return _pick(g, "Зять", "Невестка", "Зять/Невестка")
    if kind == "spouse_sibling":
        return _pick(g, "Брат супруга", "Сестра супруга", "Брат/сестра супруга")
    if kind == "sibling_spouse":
        return _pick(g, "Зять", "Невестка", "Супруг(а) брата/сестры")
    if kind == "step_parent":
        return _pick(g, "Отчим", "Мачеха", "Отчим/Мачеха")
    if kind == "step_child":
        return _pick(g, "Пасынок", "Падчерица", "Пасынок/Падчерица")
    return "Родственник"
