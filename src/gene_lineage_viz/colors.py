#!/usr/bin/env python3

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from gene_lineage_viz.config import TaxonomicLevel

GOLDEN = 0.618033988749895


def pastel_color(index: int, golden: float = GOLDEN) -> str:
    """
    A soft but visible HSL color. Successive indices step around the hue wheel by the
    golden ratio so neighbouring categories never end up with similar hues.
    """
    hue = (index * golden * 360) % 360
    saturation = 60 + (index % 4) * 8
    lightness = 40 + (index % 3) * 8
    return f"hsl({hue:.1f}, {saturation}%, {lightness}%)"


@dataclass
class LineagePalette:
    """
    Assigns each (level, category) pair a color the first time it is seen and then
    keeps it for the rest of the session, so filtering never reshuffles colors.
    """

    golden: float = GOLDEN
    _assigned: dict[str, str] = field(default_factory=dict)

    def color(self, level: TaxonomicLevel, category: str) -> str:
        key = f"{level}_{category}"
        if key not in self._assigned:
            self._assigned[key] = pastel_color(len(self._assigned), self.golden)
        return self._assigned[key]

    def scale(self, level: TaxonomicLevel, categories: Iterable[str]) -> tuple[list[str], list[str]]:
        """
        Return a (domain, range) pair suitable for an altair color scale.
        """
        domain = list(categories)
        return domain, [self.color(level, category) for category in domain]
