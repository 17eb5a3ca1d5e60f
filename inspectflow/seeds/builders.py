"""Seed the builder abbreviation dictionary.

Abbreviations are listed most-common first; the first one is the builder's
primary abbreviation. Aliases are stored as secondary abbreviations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.db.models import BuilderAbbreviationModel, BuilderModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnownBuilder:
    name: str
    abbreviations: tuple[str, ...]
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def entries(self) -> list[tuple[str, bool]]:
        """(abbreviation, is_primary) pairs, de-duplicated case-insensitively."""
        seen: set[str] = set()
        entries = []
        for index, text in enumerate(self.abbreviations + self.aliases):
            key = text.casefold()
            if key in seen:
                continue
            seen.add(key)
            entries.append((text, index == 0))
        return entries


KNOWN_BUILDERS: tuple[KnownBuilder, ...] = (
    KnownBuilder("M/I Homes", ("MI", "M/I", "MIH", "M I"), ("MI Homes", "M/I Home", "M&I Homes")),
    KnownBuilder("PRG", ("PRG",), ("P.R.G.",)),
    KnownBuilder("Heath Allen", ("Heath", "HA", "Heath Allen"), ("Heath Alan",)),
    KnownBuilder("Prairie Homes", ("Prairie", "PH", "Prairie Homes")),
    KnownBuilder("David Weekley", ("DW", "Weekley", "David Weekley"), ("D Weekley", "D.W.")),
    KnownBuilder("ADOR", ("ADOR",)),
    KnownBuilder("Amani", ("Amani",)),
    KnownBuilder("Anchor", ("Anchor",)),
    KnownBuilder("Anderson Reda", ("Anderson", "AR", "Anderson Reda"), ("Anderson-Reda",)),
    KnownBuilder("Aspect", ("Aspect",)),
    KnownBuilder("Axiom", ("Axiom",)),
    KnownBuilder("Christian", ("Christian",)),
    KnownBuilder("City Homes", ("City", "CH", "City Homes")),
    KnownBuilder(
        "DesLauriers and Sons",
        ("DesLauriers", "DLS", "Des Lauriers"),
        ("DesLauriers & Sons", "Des Lauriers and Sons"),
    ),
    KnownBuilder(
        "Edgerton & Co.",
        ("Edgerton", "E&C", "Edgerton Co"),
        ("Edgerton and Co", "Edgerton and Company"),
    ),
    KnownBuilder("EPS", ("EPS",), ("E.P.S.",)),
    KnownBuilder("Fenstra", ("Fenstra",)),
    KnownBuilder("Garret", ("Garret",), ("Garrett",)),
    KnownBuilder("GMHC", ("GMHC",), ("G.M.H.C.",)),
    KnownBuilder("Green Halo", ("Green Halo", "GH"), ("Green-Halo",)),
    KnownBuilder("Greg's Hardware", ("Greg's", "GH", "Gregs Hardware"), ("Greg Hardware", "Gregs")),
    KnownBuilder("Highmark", ("Highmark", "HM")),
    KnownBuilder("Jim Miles", ("Jim Miles", "JM", "Miles")),
    KnownBuilder(
        "Joe Donahue Construction",
        ("Joe Donahue", "JD", "Donahue"),
        ("J Donahue", "Joe D"),
    ),
    KnownBuilder("JP Remodeling", ("JP", "JPR", "JP Remodeling"), ("J.P. Remodeling",)),
    KnownBuilder("KB Mechanical", ("KB", "KBM", "KB Mech"), ("KB Mechanical",)),
    KnownBuilder("Kevin Palmer", ("Kevin", "KP", "Palmer"), ("K Palmer",)),
    KnownBuilder("Kraemer", ("Kraemer",), ("Kramer",)),
    KnownBuilder("Kyle Hoef", ("Kyle", "KH", "Hoef"), ("Kyle H",)),
    KnownBuilder("L. Cramer", ("Cramer", "LC", "L Cramer"), ("L. Cramer",)),
    KnownBuilder("Lake Country", ("Lake", "LC", "Lake Country")),
    KnownBuilder("Lewis Heating", ("Lewis", "LH", "Lewis Heating")),
    KnownBuilder("Luis Barba", ("Luis", "LB", "Barba"), ("Luis B",)),
    KnownBuilder("Lutz Construction", ("Lutz", "LC", "Lutz Construction")),
    KnownBuilder("M&D Plumbing/Heating", ("M&D", "MD", "M and D"), ("M&D Plumbing", "M&D Heating")),
    KnownBuilder("Merab Realty", ("Merab", "MR", "Merab Realty")),
    KnownBuilder("Metro", ("Metro",)),
    KnownBuilder("Midland Unico", ("Midland", "MU", "Midland Unico"), ("Midland-Unico",)),
    KnownBuilder("MJL", ("MJL",), ("M.J.L.",)),
    KnownBuilder("MN Mechanical", ("MN Mech", "MNM", "MN Mechanical"), ("Minnesota Mechanical",)),
    KnownBuilder("Multifamily", ("Multifamily", "MF", "Multi"), ("Multi-family", "Multi Family")),
    KnownBuilder("NeighborWorks", ("NeighborWorks", "NW", "Neighbor"), ("Neighbor Works",)),
    KnownBuilder("Newco Homes", ("Newco", "NH", "Newco Homes")),
    KnownBuilder("Parent", ("Parent",)),
    KnownBuilder("Reuter Walton", ("Reuter", "RW", "Reuter Walton"), ("Reuter-Walton",)),
    KnownBuilder(
        "Scott Schmidt Construction",
        ("Scott Schmidt", "SS", "Schmidt"),
        ("S Schmidt", "Scott S"),
    ),
    KnownBuilder("Sergey", ("Sergey",)),
    KnownBuilder("Stonewood", ("Stonewood", "SW")),
    KnownBuilder("SWMHP", ("SWMHP",), ("S.W.M.H.P.",)),
    KnownBuilder("TC Habitat", ("TC Habitat", "TCH", "TC"), ("Twin Cities Habitat",)),
    KnownBuilder("Trellis-Treehouse", ("Trellis", "Treehouse", "Trellis-Treehouse"), ("Trellis Treehouse",)),
    KnownBuilder("Urban Homeworks", ("Urban", "UH", "Urban Homeworks"), ("Urban Home Works",)),
    KnownBuilder("West Metro Mech", ("West Metro", "WMM", "West Metro Mech"), ("West Metro Mechanical",)),
    KnownBuilder("Yard Homes", ("Yard", "YH", "Yard Homes")),
)


async def seed_builders(
    session: AsyncSession,
    builders: tuple[KnownBuilder, ...] = KNOWN_BUILDERS,
) -> dict[str, int]:
    """Insert missing builders and abbreviations. Safe to re-run.

    Returns:
        Counts of builders and abbreviations created
    """
    existing = {
        b.name: b for b in (await session.execute(select(BuilderModel))).scalars().all()
    }
    known_pairs = {
        (row.builder_id, row.abbreviation.casefold())
        for row in (await session.execute(select(BuilderAbbreviationModel))).scalars().all()
    }

    created_builders = 0
    created_abbreviations = 0

    for known in builders:
        builder = existing.get(known.name)
        if builder is None:
            builder = BuilderModel(name=known.name)
            session.add(builder)
            await session.flush()
            existing[known.name] = builder
            created_builders += 1

        for text, is_primary in known.entries():
            if (builder.id, text.casefold()) in known_pairs:
                continue
            session.add(
                BuilderAbbreviationModel(
                    builder_id=builder.id, abbreviation=text, is_primary=is_primary
                )
            )
            known_pairs.add((builder.id, text.casefold()))
            created_abbreviations += 1

    await session.flush()
    logger.info(
        "builders_seeded: builders=%d abbreviations=%d", created_builders, created_abbreviations
    )
    return {"builders": created_builders, "abbreviations": created_abbreviations}
