import pytest

from ashram.schemas.receipt import DonationType
from ashram.services.donation_labels import DONATION_TYPE_LABELS, resolve_donation_label


@pytest.mark.parametrize(
    "donation_type, label",
    [
        ("General Donation", "अक्षयकोष"),
        ("Seva Donation", "मुठ्ठी दान"),
        ("Annadanam", "गुरुकुलम"),
        ("Vastra Danam", "जिन्सी सामग्री"),
        ("Building Fund", "भण्डारा"),
        ("Festival Sponsorship", "विशेष पूजा"),
        ("Puja Sponsorship", "आजीवन सदस्यता"),
        ("Gau Seva", "गौ सेवा"),
    ],
)
def test_known_types_resolve_to_localized_label(donation_type: str, label: str) -> None:
    assert resolve_donation_label(donation_type) == label


def test_every_enum_member_has_a_label() -> None:
    assert {member.value for member in DonationType} == set(DONATION_TYPE_LABELS)
    assert resolve_donation_label(DonationType.gau_seva) == "गौ सेवा"


def test_unknown_type_passes_through() -> None:
    assert resolve_donation_label("Temple Renovation") == "Temple Renovation"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_blank_type_is_not_available(value) -> None:
    assert resolve_donation_label(value) == "N/A"
