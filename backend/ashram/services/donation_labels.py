from __future__ import annotations

from enum import Enum

DONATION_TYPE_LABELS: dict[str, str] = {
    "General Donation": "अक्षयकोष",
    "Seva Donation": "मुठ्ठी दान",
    "Annadanam": "गुरुकुलम",
    "Vastra Danam": "जिन्सी सामग्री",
    "Building Fund": "भण्डारा",
    "Festival Sponsorship": "विशेष पूजा",
    "Puja Sponsorship": "आजीवन सदस्यता",
    "Gau Seva": "गौ सेवा",
}


def resolve_donation_label(donation_type: str | Enum | None) -> str:
    """Localized label for a donation type; unknown types are returned unchanged."""
    raw = donation_type.value if isinstance(donation_type, Enum) else donation_type
    text = str(raw or "")
    if not text.strip():
        return "N/A"
    return DONATION_TYPE_LABELS.get(text.strip(), text)
