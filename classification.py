from dataclasses import dataclass
from typing import Iterable, Optional

from models import BillingType, Origin

# Checked in this order; the first billing type with a matching tag wins.
TAG_VOCABULARY: tuple[tuple[BillingType, frozenset[str]], ...] = (
    (BillingType.fixed_price, frozenset({"fixed price", "vaste prijs"})),
    (BillingType.cost_plus, frozenset({"cost-plus", "cost plus", "nacalculatie"})),
    (BillingType.contract, frozenset({"contract"})),
    (BillingType.internal, frozenset({"internal", "intern"})),
)

DISPLAY_LABELS = {
    BillingType.fixed_price: "Fixed price",
    BillingType.cost_plus: "Cost-plus",
    BillingType.contract: "Contract",
    BillingType.internal: "Internal",
    BillingType.invalid_tag: "Invalid tag",
}

OFFER_LABEL = "Offer"


@dataclass(frozen=True)
class Classification:
    billing_type: BillingType
    display_type: str


def classify(tag_names: Iterable[Optional[str]], origin: Origin) -> Classification:
    """Pick the billing type of an entity.

    Offers are always billed as cost-plus but keep their own display label.
    Projects are classified by tag, case-insensitively; a project without a
    recognised tag is ``invalid_tag`` and recognises no revenue.
    """
    if origin is Origin.offer:
        return Classification(BillingType.cost_plus, OFFER_LABEL)

    names = {name.strip().lower() for name in tag_names if name}
    for billing_type, vocabulary in TAG_VOCABULARY:
        if names & vocabulary:
            return Classification(billing_type, DISPLAY_LABELS[billing_type])
    return Classification(
        BillingType.invalid_tag, DISPLAY_LABELS[BillingType.invalid_tag]
    )
