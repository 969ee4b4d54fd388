import dataclasses
import logging
from datetime import datetime

from ashram.services.draw_program import PAGE_WIDTH, ImageBox, Rect, TextRun
from ashram.services.receipt_content import build_receipt_content, donation_date_text
from ashram.services.receipt_layout import compose_receipt
from ashram.services.receipts import build_receipt_record
from ashram.services.resources import ReceiptFonts

NOW = datetime(2024, 8, 16, 9, 30)


def _compose(fields: dict, logos: dict | None = None):
    record = build_receipt_record(fields, now=NOW)
    return compose_receipt(build_receipt_content(record, now=NOW), ReceiptFonts(), logos)


def test_regions_are_stacked_in_reading_order(receipt_fields: dict) -> None:
    program = _compose(receipt_fields)

    assert program.region_names() == [
        "registration",
        "logo_left",
        "logo_right",
        "header",
        "receipt_callout",
        "separator",
        "donor_card",
        "details_card",
        "donation_type",
        "payment_mode",
        "amount",
        "donation_panel",
        "amount_words",
        "footer",
        "signature",
    ]
    tops = [program.region(name).y for name in ("registration", "header", "receipt_callout", "donor_card", "donation_panel", "amount_words", "footer")]
    assert tops == sorted(tops)


def test_program_carries_receipt_strings(receipt_fields: dict) -> None:
    program = _compose(receipt_fields)
    texts = program.texts()

    assert program.title == "Receipt #ASH123456"
    assert "Receipt #ASH123456" in program.texts("receipt_callout")
    assert "Issued on 15/08/2024 (15 मंसिर 2081)" in program.texts("receipt_callout")
    assert "Test Donor" in program.texts("donor_card")
    assert "15/08/2024" in program.texts("details_card")
    assert "System" in program.texts("details_card")
    assert program.texts("donation_type")[-1] == "अक्षयकोष"
    assert "Online" in program.texts("payment_mode")
    assert "रु 5,000" in program.texts("amount")
    assert "Rupees 5,000 Only" in program.texts("amount_words")
    assert "रुपैयाँ पाँच हजार मात्र" in program.texts("amount_words")
    assert "Date: 16/08/2024" in program.texts("signature")
    assert "E-mail: jashankhamul@gmail.com" in texts


def test_ops_stay_within_page_width(receipt_fields: dict) -> None:
    program = _compose(receipt_fields)
    for op in program.ops:
        if isinstance(op, Rect):
            assert 0 <= op.x and op.x + op.width <= PAGE_WIDTH


def test_card_backdrops_paint_before_their_content(receipt_fields: dict) -> None:
    program = _compose(receipt_fields)
    for region in ("receipt_callout", "donor_card", "details_card", "amount", "donation_panel"):
        first = program.ops_in(region)[0]
        assert isinstance(first, Rect)
        assert first.fill is not None


def test_email_line_uses_accent_color(receipt_fields: dict) -> None:
    program = _compose(receipt_fields)
    email = next(run for run in program.text_runs("header") if run.text.startswith("E-mail"))
    others = [run.color for run in program.text_runs("header") if run is not email and run.size == email.size]
    assert email.color not in others


def test_notes_region_only_when_notes_present(receipt_fields: dict) -> None:
    assert _compose(receipt_fields).region("notes") is None

    program = _compose({**receipt_fields, "notes": "For the evening aarti"})
    notes = program.region("notes")
    panel = program.region("donation_panel")
    assert notes is not None
    assert panel.y < notes.y and notes.bottom <= panel.bottom
    runs = list(program.text_runs("notes"))
    assert runs[-1].text == '"For the evening aarti"'
    assert runs[-1].font == "italic"


def test_blank_notes_are_treated_as_absent(receipt_fields: dict) -> None:
    assert _compose({**receipt_fields, "notes": "   "}).region("notes") is None


def test_missing_donor_id_shrinks_only_the_donor_card(receipt_fields: dict) -> None:
    without_id = _compose(receipt_fields)
    with_id = _compose({**receipt_fields, "donorId": "DNR-0042"})

    assert "Donor ID:" not in without_id.texts("donor_card")
    assert "DNR-0042" in with_id.texts("donor_card")
    assert without_id.region("donor_card").height < with_id.region("donor_card").height
    assert without_id.region("details_card").height == with_id.region("details_card").height
    mono = next(run for run in with_id.text_runs("donor_card") if run.text == "DNR-0042")
    assert mono.font == "mono"


def test_seva_uses_nepali_range_verbatim(receipt_fields: dict) -> None:
    fields = {
        **receipt_fields,
        "donationType": "Seva Donation",
        "startDateNepali": "2081/01/01",
        "endDateNepali": "2081/01/15",
        "startDate": "2024-01-01",
        "endDate": "2024-01-15",
    }
    program = _compose(fields)

    assert "2081/01/01 - 2081/01/15" in program.texts("details_card")
    assert program.texts("donation_type")[-1] == "मुठ्ठी दान"


def test_seva_date_fallbacks(receipt_fields: dict) -> None:
    seva = {**receipt_fields, "donationType": "Seva Donation"}
    english = build_receipt_record({**seva, "startDate": "2024-01-01", "endDate": "2024-01-15"})
    assert donation_date_text(english) == "01/01/2024 - 15/01/2024"
    assert donation_date_text(build_receipt_record(seva)) == "N/A"


def test_missing_donation_date_is_not_available(receipt_fields: dict) -> None:
    fields = {key: value for key, value in receipt_fields.items() if key != "dateOfDonation"}
    assert "N/A" in _compose(fields).texts("details_card")


def test_missing_logos_keep_their_boxes(receipt_fields: dict, make_png) -> None:
    bare = _compose(receipt_fields)
    assert bare.images() == []
    assert bare.region("logo_left") is not None and bare.region("logo_right") is not None

    with_logos = _compose(receipt_fields, {"left": make_png(), "right": None})
    images = with_logos.images()
    assert [image.region for image in images] == ["logo_left"]
    assert isinstance(images[0], ImageBox)
    assert with_logos.region("header") == bare.region("header")


def test_zero_amount_renders_zero_words(receipt_fields: dict) -> None:
    program = _compose({**receipt_fields, "amount": 0})
    assert "रु 0" in program.texts("amount")
    assert "Rupees Zero Only" in program.texts("amount_words")
    assert "रुपैयाँ शून्य मात्र" in program.texts("amount_words")


def test_long_values_wrap_instead_of_overflowing(receipt_fields: dict) -> None:
    name = "Shree Radha Sarveshwar Devotee Family Trust of Lalitpur and Kathmandu Valley"
    program = _compose({**receipt_fields, "donorName": name})
    lines = [run for run in program.text_runs("donor_card") if run.font == "bold" and run.align == "right"]
    assert len(lines) > 1
    assert " ".join(run.text for run in lines) == name
    card = program.region("donor_card")
    assert all(run.y < card.bottom for run in lines)


def test_runaway_notes_are_logged_not_reflowed(receipt_fields: dict, caplog) -> None:
    record = build_receipt_record(receipt_fields, now=NOW)
    content = dataclasses.replace(build_receipt_content(record, now=NOW), notes="seva " * 1500)
    with caplog.at_level(logging.WARNING, logger="ashram.services.receipt_layout"):
        program = compose_receipt(content, ReceiptFonts())
    assert program.region("signature").bottom > program.height
    assert any(rec.getMessage() == "receipt_layout_overflow" for rec in caplog.records)


def test_text_runs_have_positive_sizes(receipt_fields: dict) -> None:
    for op in _compose(receipt_fields).ops:
        if isinstance(op, TextRun):
            assert op.size > 0
            assert op.text
