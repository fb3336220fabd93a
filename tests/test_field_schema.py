"""
Unit tests for the field schema: alias resolution, validators and formatters.
"""

import pytest

from invoice_lens.services.field_schema import (
    FIELD_KEYS,
    FIELD_SPECS,
    NOT_AVAILABLE,
    FieldKey,
    format_amount,
    format_field,
    parse_amount,
    resolve_field,
    validate_field,
)


class TestResolveField:

    @pytest.mark.parametrize("label,expected", [
        ("invoice number", FieldKey.INVOICE_NUMBER),
        ("Inv #", FieldKey.INVOICE_NUMBER),
        ("invoice no.", FieldKey.INVOICE_NUMBER),
        ("date", FieldKey.INVOICE_DATE),
        ("Grand Total", FieldKey.INVOICE_AMOUNT),
        ("curr", FieldKey.CURRENCY),
        ("address", FieldKey.LEGAL_ENTITY_ADDRESS),
        ("bill to", FieldKey.VENDOR_NAME),
        ("billing address", FieldKey.VENDOR_ADDRESS),
        ("terms", FieldKey.PAYMENT_TERMS),
        ("payment type", FieldKey.PAYMENT_METHOD),
        ("GST No", FieldKey.VAT_ID),
        ("account number", FieldKey.GL_ACCOUNT_NUMBER),
        ("account no", FieldKey.BANK_ACCOUNT_NUMBER),
        ("  VAT ID  ", FieldKey.VAT_ID),
    ])
    def test_known_aliases(self, label, expected):
        assert resolve_field(label) is expected

    @pytest.mark.parametrize("label", ["invoice num", "po number", "subtotal", "", "invoice"])
    def test_no_partial_matching(self, label):
        assert resolve_field(label) is None

    def test_keys_in_canonical_order(self):
        assert [key.value for key in FIELD_KEYS] == [
            "invoiceNumber", "invoiceDate", "invoiceAmount", "currency",
            "legalEntityName", "legalEntityAddress", "vendorName", "vendorAddress",
            "paymentTerms", "paymentMethod", "vatId", "glAccountNumber", "bankAccountNumber",
        ]

    def test_every_key_has_a_spec(self):
        assert set(FIELD_SPECS) == set(FIELD_KEYS)
        assert FIELD_SPECS[FieldKey.VAT_ID].display_name == "VAT ID"


class TestAmounts:

    @pytest.mark.parametrize("raw,expected", [
        ("1500.5", 1500.5),
        ("$1,234.56", 1234.56),
        ("EUR 99", 99.0),
        ("-42.10", -42.1),
        ("1.500.50", 1.5),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "abc", "-", "n/a"])
    def test_parse_amount_without_number(self, raw):
        assert parse_amount(raw) is None

    def test_format_amount_groups_with_two_decimals(self):
        assert format_amount("1500.5") == "1,500.50"
        assert format_amount("200000") == "200,000.00"
        assert format_amount("₹ 2,00,000.00") == "200,000.00"
        assert format_amount("nothing") is None


class TestValidators:

    def test_invoice_number(self):
        assert validate_field(FieldKey.INVOICE_NUMBER, "INV-001")
        assert not validate_field(FieldKey.INVOICE_NUMBER, NOT_AVAILABLE)
        assert not validate_field(FieldKey.INVOICE_NUMBER, "")
        assert not validate_field(FieldKey.INVOICE_NUMBER, None)

    def test_invoice_date(self):
        assert validate_field(FieldKey.INVOICE_DATE, "01/02/2024")
        assert validate_field(FieldKey.INVOICE_DATE, "March 5, 2024")
        assert not validate_field(FieldKey.INVOICE_DATE, "not a date")
        assert not validate_field(FieldKey.INVOICE_DATE, NOT_AVAILABLE)

    def test_invoice_amount(self):
        assert validate_field(FieldKey.INVOICE_AMOUNT, "1,500.50")
        assert validate_field(FieldKey.INVOICE_AMOUNT, "$ 12")
        assert not validate_field(FieldKey.INVOICE_AMOUNT, "twelve")
        assert not validate_field(FieldKey.INVOICE_AMOUNT, NOT_AVAILABLE)

    def test_other_fields_require_presence(self):
        assert validate_field(FieldKey.VENDOR_NAME, "Globex")
        assert not validate_field(FieldKey.VENDOR_NAME, NOT_AVAILABLE)


class TestFormatters:

    def test_date_rendered_as_us_short_date(self):
        assert format_field(FieldKey.INVOICE_DATE, "01/02/2024") == "1/2/2024"
        assert format_field(FieldKey.INVOICE_DATE, "2024-03-15") == "3/15/2024"

    def test_unparseable_values_pass_through(self):
        assert format_field(FieldKey.INVOICE_DATE, "sometime") == "sometime"
        assert format_field(FieldKey.INVOICE_AMOUNT, "lots") == "lots"

    def test_sentinel_passes_through(self):
        for key in FIELD_KEYS:
            assert format_field(key, NOT_AVAILABLE) == NOT_AVAILABLE

    def test_identity_for_plain_fields(self):
        assert format_field(FieldKey.PAYMENT_TERMS, "Net 30") == "Net 30"

    @pytest.mark.parametrize("key,value", [
        (FieldKey.INVOICE_NUMBER, "INV-001"),
        (FieldKey.INVOICE_DATE, "15 March 2024"),
        (FieldKey.INVOICE_AMOUNT, "1234567.891"),
        (FieldKey.CURRENCY, "$ (US Dollar)"),
    ])
    def test_formatted_values_stay_valid(self, key, value):
        """Re-feeding a formatted value through formatter and validator is stable"""
        formatted = format_field(key, value)
        assert validate_field(key, formatted)
        assert format_field(key, formatted) == formatted
