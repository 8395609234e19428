"""Asnaf — the eight canonical classes of zakat recipients.

Category assignment is an administrative act: the reviewer picks the class,
nothing is inferred from income or family size. Validation is limited to
membership of the fixed set.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from loguru import logger

from baitulmal.core.exceptions import InvalidInput, UnknownAsnafCategory

if TYPE_CHECKING:
    from .models import AidApplication


class AsnafCategory(StrEnum):
    FAKIR = "fakir"
    MISKIN = "miskin"
    AMIL = "amil"
    MUALLAF = "muallaf"
    RIQAB = "riqab"
    GHARIMIN = "gharimin"
    FISABILILLAH = "fisabilillah"
    IBNU_SABIL = "ibnu_sabil"


ASNAF_DESCRIPTIONS: dict[AsnafCategory, str] = {
    AsnafCategory.FAKIR: "Has neither property nor income",
    AsnafCategory.MISKIN: "Property or income insufficient for basic needs",
    AsnafCategory.AMIL: "Zakat collector or administrator",
    AsnafCategory.MUALLAF: "Recent convert to Islam",
    AsnafCategory.RIQAB: "Freeing of slaves or captives",
    AsnafCategory.GHARIMIN: "In debt for lawful needs",
    AsnafCategory.FISABILILLAH: "In the cause of Allah, e.g. religious education",
    AsnafCategory.IBNU_SABIL: "Stranded traveller",
}


def parse_category(value: AsnafCategory | str) -> AsnafCategory:
    """Coerce a raw value to AsnafCategory.

    Raises:
        UnknownAsnafCategory: value is not one of the eight asnaf.
    """
    if isinstance(value, AsnafCategory):
        return value
    try:
        return AsnafCategory(str(value).strip().lower())
    except ValueError:
        raise UnknownAsnafCategory(
            f"Unknown asnaf category: {value!r}. Expected one of: {', '.join(c.value for c in AsnafCategory)}",
            action="assign_category",
            category=str(value),
        ) from None


def assign(application: AidApplication, category: AsnafCategory | str) -> AidApplication:
    """Record the asnaf category on a Zakat application.

    Khairat death-benefit claims carry no category.
    """
    from .models import ApplicationKind

    parsed = parse_category(category)
    if application.kind != ApplicationKind.ZAKAT:
        raise InvalidInput(
            "Asnaf categories apply to zakat applications only",
            entity_id=application.id,
            action="assign_category",
            state=application.status.value,
        )
    previous = application.category
    application.category = parsed
    if previous and previous != parsed:
        logger.info(f"Application {application.id}: asnaf {previous.value} -> {parsed.value}")
    return application
