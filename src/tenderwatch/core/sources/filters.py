"""
Keyword and budget filters for construction tenders.

The Doffin pipeline narrows results in three stages and keeps the most
specific stage that still has results. TED uses a single keyword stage with
a fall back to everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..normalize.canonical import Tender
from ..normalize.parsing import parse_money


CONSTRUCTION_KEYWORDS_NO = (
    "bygg", "bygge", "byggeri", "bygning", "konstruksjon",
    "anlegg", "rehabilitering", "renovering", "vedlikehold",
    "maling", "maler", "fasade", "tak", "gulv", "bad",
    "rørlegger", "elektriker", "vvs", "ventilasjon",
    "betong", "mur", "tømrer", "snekker", "graving",
    "riving", "demontering", "montering", "installasjon",
    "utomhus", "uteområde", "asfaltering", "belegg",
    "sanitær", "varme", "isolasjon", "membran",
    "stillas", "vinduer", "dører", "kjøkken",
    "barnehage", "skole", "ombygging", "omsorgsbolig",
    "entreprise", "prosjekt", "lekeplass",
)

CONSTRUCTION_KEYWORDS_EN = (
    "construction", "building", "renovation", "repair", "maintenance",
    "painting", "facade", "roof", "floor", "plumbing", "electrical",
    "hvac", "ventilation", "concrete", "masonry", "carpentry",
    "demolition", "installation", "asphalt", "insulation",
    "windows", "doors", "kitchen", "school", "kindergarten",
    "pipeline", "bridge", "road", "tunnel", "housing",
)

# Requirements that put a tender out of reach for a small contractor
COMPLEX_KEYWORDS = (
    "rammeavtale",
    "totalentreprise",
    "iso 9001",
    "iso 14001",
    "sentral godkjenning",
    "ansvarsrett",
    "prekvalifisering",
)


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def is_construction_related(
    tender: Tender,
    keywords: Iterable[str] = CONSTRUCTION_KEYWORDS_NO,
) -> bool:
    """Match keywords against title, description, category and buyer."""
    text = " ".join((tender.title, tender.description, tender.category, tender.buyer))
    return contains_any(text, keywords)


def is_beginner_friendly(tender: Tender) -> bool:
    """True unless title or description mention a complex requirement."""
    return not contains_any(f"{tender.title} {tender.description}", COMPLEX_KEYWORDS)


def is_under_budget(tender: Tender, ceiling: int) -> bool:
    """True when the amount is at most ``ceiling``.

    Tenders without a readable amount pass.
    """
    if not tender.price:
        return True
    amount = parse_money(tender.price).as_int
    return amount is None or amount <= ceiling


@dataclass
class FilterReport:
    """Stage sizes of one filter run."""

    total: int
    construction: int
    under_budget: int
    beginner_friendly: int
    kept_stage: str


def apply_filter_pipeline(
    tenders: list[Tender],
    budget_ceiling: int,
) -> tuple[list[Tender], FilterReport]:
    """Narrow tenders to construction work a small contractor can bid on.

    Stages are construction keywords, then budget ceiling, then the
    complex-requirement exclusion. The most specific non-empty stage is
    kept; if every stage is empty the (empty) construction stage is returned.

    Returns:
        Tuple of (kept tenders, report)
    """
    construction = [t for t in tenders if is_construction_related(t)]
    under_budget = [t for t in construction if is_under_budget(t, budget_ceiling)]
    beginner = [t for t in under_budget if is_beginner_friendly(t)]

    if beginner:
        kept, stage = beginner, "beginner_friendly"
    elif under_budget:
        kept, stage = under_budget, "under_budget"
    else:
        kept, stage = construction, "construction"

    report = FilterReport(
        total=len(tenders),
        construction=len(construction),
        under_budget=len(under_budget),
        beginner_friendly=len(beginner),
        kept_stage=stage,
    )
    return kept, report


def filter_construction_or_all(
    tenders: list[Tender],
    keywords: Iterable[str],
) -> list[Tender]:
    """Keep keyword matches, or every tender when nothing matches."""
    keywords = tuple(keywords)
    matching = [
        t for t in tenders
        if contains_any(" ".join((t.title, t.description, t.buyer, t.location)), keywords)
    ]
    return matching or list(tenders)


def dedupe(tenders: Iterable[Tender], key: str = "id") -> list[Tender]:
    """Drop later tenders that repeat an earlier value of ``key``."""
    seen: set[str] = set()
    unique: list[Tender] = []
    for tender in tenders:
        value = getattr(tender, key)
        if key == "title":
            value = tender.normalized_title
        if value in seen:
            continue
        seen.add(value)
        unique.append(tender)
    return unique
