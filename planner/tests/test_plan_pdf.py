"""
Tests for plan PDF rendering.
"""

from finalwishes.services.plan_pdf import plan_pdf_generator
from finalwishes.services.unified_plan import build_unified_data


def test_empty_plan_still_renders():
    pdf = plan_pdf_generator.generate(build_unified_data({}, {}), prepared_for="Jane")
    assert pdf.startswith(b"%PDF")


def test_plan_with_nested_sections_renders():
    unified = build_unified_data(
        {"funeral": {"service_type": "Memorial", "music": ["Amazing Grace", ""]}},
        {
            "personal_profile": {"full_name": "Jane <Doe> & Co", "ssn": "123-45-6789"},
            "pets": [{"name": "Rex", "caregiver": "Sam"}],
            "bank_accounts": [{"bank_name": "First Bank", "account_type": "checking"}],
        },
    )
    pdf = plan_pdf_generator.generate(unified)
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_non_string_values_render():
    unified = build_unified_data(
        {"preparer_name": 42, "messages_to_loved_ones": {"main_message": 5}},
        {},
    )
    pdf = plan_pdf_generator.generate(unified, prepared_for=7)
    assert pdf.startswith(b"%PDF")
