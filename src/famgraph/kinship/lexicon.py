"""Lexical table mapping kinship words and phrases to path expressions.

Russian phrases compose right-to-left (genitive chains: "сестра мамы" is
the mother's sister, so the ``мамы`` hop comes first). English possessives
compose left-to-right ("mother's sister"); "X of Y" reads right-to-left
like the Russian genitive.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from itertools import product

from ..graph.paths import PathExpr, Step
from ..models import Gender
from ..utils.normalize import normalize_text

_CYRILLIC_RE = re.compile(r"[а-я]")
_POSSESSIVE_RE = re.compile(r"(?:'s|’s|s'|’)$")

# Longest multi-word term we try to match
_MAX_TERM_TOKENS = 3

_FILLER = {"my", "the", "a", "мой", "моя", "мое", "мои", "моего", "моей", "моих", "моему"}

M, F = Gender.MALE, Gender.FEMALE


@dataclass(frozen=True)
class LexicalEntry:
    pattern: str
    path: PathExpr
    gender: Gender | None = None


@dataclass(frozen=True)
class Interpretation:
    """One reading of a phrase: hops with the gender hint for each hop."""

    hops: tuple[tuple[Step, Gender | None], ...]

    @property
    def path(self) -> PathExpr:
        return PathExpr(tuple(step for step, _ in self.hops))

    @property
    def gender(self) -> Gender | None:
        return self.hops[-1][1] if self.hops else None


def _hops(entry: LexicalEntry) -> tuple[tuple[Step, Gender | None], ...]:
    # the gender hint describes the person at the end of the term
    steps = entry.path.steps
    return tuple((s, entry.gender if i == len(steps) - 1 else None) for i, s in enumerate(steps))


@dataclass
class LexicalPatternTable:
    entries: dict[str, list[LexicalEntry]] = field(default_factory=dict)

    def register(self, pattern: str, path_expr: str | PathExpr, gender: Gender | str | None = None) -> LexicalEntry:
        key = normalize_text(pattern)
        if not key:
            raise ValueError("pattern must not be empty")
        entry = LexicalEntry(key, PathExpr.parse(path_expr), Gender(gender) if gender else None)
        bucket = self.entries.setdefault(key, [])
        if entry not in bucket:
            bucket.append(entry)
        return entry

    def register_forms(self, path_expr: str, gender: Gender | None, *forms: str) -> None:
        for form in forms:
            self.register(form, path_expr, gender)

    def lookup(self, pattern: str) -> list[LexicalEntry]:
        return list(self.entries.get(normalize_text(pattern), []))

    # ------------------------------------------------------------------
    # Phrase interpretation
    # ------------------------------------------------------------------

    def _tokens(self, phrase: str) -> list[str]:
        tokens = []
        for tok in normalize_text(phrase).split():
            if tok in _FILLER:
                continue
            stripped = _POSSESSIVE_RE.sub("", tok)
            tokens.append(stripped if stripped and stripped in self.entries else tok)
        return tokens

    def _segment(self, tokens: list[str]) -> list[list[LexicalEntry]] | None:
        """Greedy longest-match split of tokens into known terms."""
        terms: list[list[LexicalEntry]] = []
        i = 0
        while i < len(tokens):
            for width in range(min(_MAX_TERM_TOKENS, len(tokens) - i), 0, -1):
                key = " ".join(tokens[i : i + width])
                if key in self.entries:
                    terms.append(self.entries[key])
                    i += width
                    break
            else:
                return None
        return terms

    def interpret(self, phrase: str) -> list[Interpretation]:
        """Every path the phrase can denote; ``[]`` when a word is unknown."""
        whole = self.lookup(phrase)
        if whole:
            return [Interpretation(_hops(e)) for e in whole]

        tokens = self._tokens(phrase)
        if not tokens:
            return []
        if "of" in tokens:
            # "sister of mother" == "mother's sister"
            parts = [p for p in " ".join(tokens).split(" of ") if p]
            tokens = [t for part in reversed(parts) for t in part.split()]
            right_to_left = False
        else:
            right_to_left = bool(_CYRILLIC_RE.search(" ".join(tokens)))

        terms = self._segment(tokens)
        if not terms:
            return []
        if right_to_left:
            terms.reverse()

        out: list[Interpretation] = []
        for combo in product(*terms):
            hops = tuple(h for entry in combo for h in _hops(entry))
            interp = Interpretation(hops)
            if interp not in out:
                out.append(interp)
        return out


def default_table() -> LexicalPatternTable:
    """Table with the built-in Russian and English kinship vocabulary."""
    t = LexicalPatternTable()

    # -- Russian: nominative, genitive and common diminutive forms --------
    t.register_forms("P", F, "мама", "мамы", "мать", "матери", "мамочка", "мамочки")
    t.register_forms("P", M, "папа", "папы", "отец", "отца", "папочка")
    t.register_forms("P", None, "родитель", "родителя", "родители", "родителей")
    t.register_forms("C", M, "сын", "сына", "сынок", "сынишка")
    t.register_forms("C", F, "дочь", "дочери", "дочка", "дочки", "доченька")
    t.register_forms("C", None, "ребенок", "ребенка", "дети", "детей")
    t.register_forms("S", M, "брат", "брата", "братик", "братишка")
    t.register_forms("S", F, "сестра", "сестры", "сестренка", "сестрички", "сестричка")
    t.register_forms("P.P", M, "дедушка", "дедушки", "дед", "деда")
    t.register_forms("P.P", F, "бабушка", "бабушки", "бабуля", "бабули")
    t.register_forms("P.P.P", M, "прадедушка", "прадедушки", "прадед", "прадеда")
    t.register_forms("P.P.P", F, "прабабушка", "прабабушки")
    t.register_forms("C.C", M, "внук", "внука")
    t.register_forms("C.C", F, "внучка", "внучки")
    t.register_forms("C.C.C", M, "правнук", "правнука")
    t.register_forms("C.C.C", F, "правнучка", "правнучки")
    t.register_forms("P.S", M, "дядя", "дяди")
    t.register_forms("P.S", F, "тетя", "тети")
    t.register_forms("S.C", M, "племянник", "племянника")
    t.register_forms("S.C", F, "племянница", "племянницы")
    t.register_forms("P.S.C", M, "двоюродный брат", "двоюродного брата")
    t.register_forms("P.S.C", F, "двоюродная сестра", "двоюродной сестры")
    t.register_forms("P.P.S.C.C", M, "троюродный брат", "троюродного брата")
    t.register_forms("P.P.S.C.C", F, "троюродная сестра", "троюродной сестры")
    t.register_forms("M", M, "муж", "мужа", "супруг")
    t.register_forms("M", F, "жена", "жены")
    t.register_forms("M", None, "супруга")
    t.register_forms("M.P", M, "тесть", "тестя", "свекор", "свекра")
    t.register_forms("M.P", F, "теща", "тещи", "свекровь", "свекрови")
    t.register_forms("C.M", M, "зять", "зятя")
    t.register_forms("C.M", F, "невестка", "невестки", "сноха", "снохи")
    t.register_forms("M.S", M, "шурин", "шурина", "деверь", "деверя")
    t.register_forms("M.S", F, "свояченица", "свояченицы", "золовка", "золовки")
    t.register_forms("P.M", M, "отчим", "отчима")
    t.register_forms("P.M", F, "мачеха", "мачехи")
    t.register_forms("M.C", M, "пасынок", "пасынка")
    t.register_forms("M.C", F, "падчерица", "падчерицы")

    # -- English ------------------------------------------------------------
    t.register_forms("P", F, "mother", "mom", "mum", "mama")
    t.register_forms("P", M, "father", "dad", "papa")
    t.register_forms("P", None, "parent")
    t.register_forms("C", M, "son")
    t.register_forms("C", F, "daughter")
    t.register_forms("C", None, "child", "kid")
    t.register_forms("S", M, "brother")
    t.register_forms("S", F, "sister")
    t.register_forms("S", None, "sibling")
    t.register_forms("P.P", M, "grandfather", "grandpa")
    t.register_forms("P.P", F, "grandmother", "grandma")
    t.register_forms("P.P", None, "grandparent")
    t.register_forms("P.P.P", M, "great-grandfather", "great grandfather")
    t.register_forms("P.P.P", F, "great-grandmother", "great grandmother")
    t.register_forms("C.C", M, "grandson")
    t.register_forms("C.C", F, "granddaughter")
    t.register_forms("C.C", None, "grandchild")
    t.register_forms("P.S", M, "uncle")
    t.register_forms("P.S", F, "aunt", "auntie")
    t.register_forms("S.C", M, "nephew")
    t.register_forms("S.C", F, "niece")
    t.register_forms("P.S.C", None, "cousin", "first cousin")
    t.register_forms("P.P.S.C.C", None, "second cousin")
    t.register_forms("M", M, "husband")
    t.register_forms("M", F, "wife")
    t.register_forms("M", None, "spouse")
    t.register_forms("M.P", M, "father-in-law")
    t.register_forms("M.P", F, "mother-in-law")
    t.register_forms("C.M", M, "son-in-law")
    t.register_forms("C.M", F, "daughter-in-law")
    for path in ("M.S", "S.M"):
        t.register_forms(path, M, "brother-in-law")
        t.register_forms(path, F, "sister-in-law")
    t.register_forms("P.M", M, "stepfather")
    t.register_forms("P.M", F, "stepmother")
    t.register_forms("M.C", M, "stepson")
    t.register_forms("M.C", F, "stepdaughter")
    return t
