"""
Timpris per affärsområde (business domain).

Regler:
- Har området rate_components → timpriset är summan av komponenternas värden.
  Värden som inte går att tolka som tal räknas som 0.
- Annars används hourly_rate som det är sparat.

RateResolver memoiserar projektionen så att samma domänobjekt returneras så
länge innehållet inte ändrats. Konsumenter som jämför med `is` slipper då
räkna om i onödan.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Optional, Tuple

from quotely.server.models import BusinessDomain, RateComponent


def _to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def component_total(components: Iterable[RateComponent]) -> float:
    return sum(_to_number(c.value) for c in components)


def resolve_domain_rate(domain: BusinessDomain) -> float:
    if domain.rate_components:
        return component_total(domain.rate_components)
    return float(domain.hourly_rate)


def with_resolved_rate(domain: BusinessDomain) -> BusinessDomain:
    """
    Returnerar domänen med korrekt timpris. Samma objekt om priset redan
    stämmer, annars en ny kopia.
    """
    if not domain.rate_components:
        return domain
    rate = component_total(domain.rate_components)
    if domain.hourly_rate == rate:
        return domain
    return domain.model_copy(update={"hourly_rate": rate})


class RateResolver:
    """Memoiserad variant av with_resolved_rate, nycklad på domänens id + innehåll."""

    def __init__(self) -> None:
        # domain_id → (källobjekt, härlett objekt)
        self._cache: Dict[str, Tuple[BusinessDomain, BusinessDomain]] = {}

    def resolve(self, domain: BusinessDomain) -> BusinessDomain:
        cached = self._cache.get(domain.id)
        if cached is not None:
            source, derived = cached
            if source is domain or source == domain:
                return derived

        derived = with_resolved_rate(domain)
        self._cache[domain.id] = (domain, derived)
        return derived

    def resolve_all(self, domains: Iterable[BusinessDomain]) -> Tuple[BusinessDomain, ...]:
        return tuple(self.resolve(d) for d in domains)

    def forget(self, domain_id: str) -> None:
        self._cache.pop(domain_id, None)

    def clear(self) -> None:
        self._cache.clear()


# ---------------------------------------------------------------------
# Uppdateringsvägen: varje ändring av en komponent ger ett NYTT domänobjekt
# ---------------------------------------------------------------------

def add_rate_component(
    domain: BusinessDomain,
    component_id: str,
    label: str = "",
    value: Any = 0,
) -> BusinessDomain:
    components = tuple(domain.rate_components) + (RateComponent(id=component_id, label=label, value=value),)
    return with_resolved_rate(domain.model_copy(update={"rate_components": components}))


def update_rate_component(
    domain: BusinessDomain,
    component_id: str,
    *,
    label: Optional[str] = None,
    value: Any = None,
) -> BusinessDomain:
    changes: Dict[str, Any] = {}
    if label is not None:
        changes["label"] = label
    if value is not None:
        changes["value"] = value

    components = tuple(
        c.model_copy(update=changes) if c.id == component_id else c
        for c in domain.rate_components
    )
    # Alltid ny referens, även om värdet råkar bli detsamma
    return with_resolved_rate(domain.model_copy(update={"rate_components": components}))


def remove_rate_component(domain: BusinessDomain, component_id: str) -> BusinessDomain:
    components = tuple(c for c in domain.rate_components if c.id != component_id)
    # Tas sista komponenten bort ligger senast uträknade timpriset kvar
    return with_resolved_rate(domain.model_copy(update={"rate_components": components}))
