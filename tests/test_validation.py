"""
Tests for the deposit rule table

Covers rule ordering, each individual rule, the number/date parsers and the
manifest exported to the browser client.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from deposit_slip.schemas import DepositRecord
from deposit_slip.validation import (
    DEPOSIT_RULES,
    REQUIRED_FIELDS,
    DepositValidator,
    DepositValidationError,
    NUMERIC_TEXT_PATTERN,
    RuleCode,
    looks_numeric,
    parse_calendar_date,
    parse_number,
    rule_manifest,
)


TODAY = date(2030, 1, 15)


def make_form(**overrides):
    form = {
        "bankName": "State Bank",
        "branchName": "MG Road",
        "date": TODAY.isoformat(),
        "name": "Asha Rao",
        "accountNumber": "1234567890",
        "amountInNumbers": "5000",
        "amountInWords": "Five Thousand",
        "denominations": "500 x 10",
        "totalAmount": "5000",
        "panNumber": "ABCDE1234F",
        "mailId": "asha@example.com",
    }
    form.update(overrides)
    return form


@pytest.fixture
def validator():
    """Validator with a fixed clock"""
    return DepositValidator(today=lambda: TODAY)


class TestAcceptance:
    """Valid submissions"""

    def test_valid_form_is_accepted(self, validator):
        result = validator.validate(make_form())
        assert result.accepted is True
        assert result.reason is None
        assert isinstance(result.record, DepositRecord)
        assert result.record.accountNumber == "1234567890"
        assert result.record.amount == Decimal("5000")

    def test_extra_keys_are_dropped_from_record(self, validator):
        result = validator.validate(make_form(comment="ignore me"))
        assert result.accepted is True
        assert "comment" not in result.record.model_dump()
        assert set(result.record.model_dump()) == set(REQUIRED_FIELDS)

    def test_validate_or_raise_returns_record(self, validator):
        record = validator.validate_or_raise(make_form())
        assert record.panNumber == "ABCDE1234F"


class TestPresence:
    """Rule 1: every field present and non-empty"""

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_missing_field_is_named(self, validator, field):
        form = make_form()
        del form[field]
        result = validator.validate(form)
        assert result.accepted is False
        assert result.reason == f"Missing required field: {field}"
        assert result.rule == RuleCode.REQUIRED

    def test_empty_string_counts_as_missing(self, validator):
        result = validator.validate(make_form(name=""))
        assert result.reason == "Missing required field: name"

    def test_first_missing_field_in_canonical_order(self, validator):
        form = make_form()
        del form["mailId"]
        del form["accountNumber"]
        del form["branchName"]
        result = validator.validate(form)
        assert result.reason == "Missing required field: branchName"

    def test_presence_checked_before_format_rules(self, validator):
        form = make_form(panNumber="bad")
        del form["mailId"]
        result = validator.validate(form)
        assert result.reason == "Missing required field: mailId"


class TestAccountNumber:
    """Rule 2: alphanumeric, 10 to 12 characters"""

    MESSAGE = "Account Number must be alphanumeric and 10 to 12 characters long."

    @pytest.mark.parametrize("value", ["1234567890", "ABCDEF12345", "abc123DEF456"])
    def test_valid_account_numbers(self, validator, value):
        assert validator.validate(make_form(accountNumber=value)).accepted is True

    @pytest.mark.parametrize("value", [
        "123456789",        # 9 characters
        "1234567890123",    # 13 characters
        "12345-67890",      # symbol
        "12345 67890",      # space
        "1234567890\n",     # trailing newline
    ])
    def test_invalid_account_numbers(self, validator, value):
        result = validator.validate(make_form(accountNumber=value))
        assert result.reason == self.MESSAGE
        assert result.rule == RuleCode.ACCOUNT_NUMBER


class TestPanNumber:
    """Rule 3: five letters, four digits, one letter"""

    MESSAGE = "PAN Number must be in the format ABCDE1234F."

    def test_valid_pan(self, validator):
        assert validator.validate(make_form(panNumber="ABCDE1234F")).accepted is True

    @pytest.mark.parametrize("value", ["abcde1234f", "ABCD12345F", "ABCDE12345", "ABCDE1234FG"])
    def test_invalid_pan(self, validator, value):
        result = validator.validate(make_form(panNumber=value))
        assert result.reason == self.MESSAGE

    def test_account_number_checked_before_pan(self, validator):
        result = validator.validate(make_form(accountNumber="short", panNumber="bad"))
        assert result.rule == RuleCode.ACCOUNT_NUMBER


class TestAmounts:
    """Rules 4 to 6: numeric, positive, matching amounts"""

    @pytest.mark.parametrize("amount,total", [
        ("abc", "5000"),
        ("5000", "five"),
        ("5,000", "5,000"),
        ("₹5000", "5000"),
        ("NaN", "NaN"),
        ("Infinity", "Infinity"),
        ("1e999", "1e999"),
    ])
    def test_non_numeric_amounts(self, validator, amount, total):
        result = validator.validate(make_form(amountInNumbers=amount, totalAmount=total))
        assert result.reason == "Amount fields must be valid numbers."

    @pytest.mark.parametrize("amount,total", [("0", "0"), ("-5", "-5"), ("5000", "0")])
    def test_non_positive_amounts(self, validator, amount, total):
        result = validator.validate(make_form(amountInNumbers=amount, totalAmount=total))
        assert result.reason == "Amount fields must be greater than zero."

    def test_equal_amounts_with_different_formatting_match(self, validator):
        result = validator.validate(make_form(amountInNumbers="500.00", totalAmount="500"))
        assert result.accepted is True

    def test_mismatched_amounts(self, validator):
        result = validator.validate(make_form(amountInNumbers="500", totalAmount="500.01"))
        assert result.reason == "Amount in Numbers and Total Amount must match."
        assert result.rule == RuleCode.AMOUNT_MATCH

    def test_numeric_check_before_positive_check(self, validator):
        result = validator.validate(make_form(amountInNumbers="-1", totalAmount="x"))
        assert result.rule == RuleCode.AMOUNT_NUMERIC


class TestAmountInWords:
    """Rule 7: amount in words must be text"""

    MESSAGE = "Amount in Words must not be an integer."

    @pytest.mark.parametrize("value", ["500", "500.50", " 42 ", "1e3"])
    def test_numeric_words_rejected(self, validator, value):
        result = validator.validate(make_form(amountInWords=value))
        assert result.reason == self.MESSAGE

    @pytest.mark.parametrize("value", ["   ", "Infinity", "-Infinity", "0x10", "0b101", "1e999"])
    def test_browser_numeric_text_rejected(self, validator, value):
        result = validator.validate(make_form(amountInWords=value))
        assert result.reason == self.MESSAGE
        assert result.rule == RuleCode.AMOUNT_IN_WORDS

    @pytest.mark.parametrize("value", ["Five Hundred", "Five Thousand Only", "500 rupees", "infinity", "-0x10"])
    def test_textual_words_accepted(self, validator, value):
        assert validator.validate(make_form(amountInWords=value)).accepted is True

    def test_looks_numeric(self):
        assert looks_numeric(" 12.5 ") is True
        assert looks_numeric("") is True
        assert looks_numeric("Twelve") is False


class TestDate:
    """Rule 8: date must be today or later"""

    MESSAGE = "Date must be today or later."

    def test_yesterday_rejected(self, validator):
        result = validator.validate(make_form(date=(TODAY - timedelta(days=1)).isoformat()))
        assert result.reason == self.MESSAGE
        assert result.rule == RuleCode.DATE_NOT_PAST

    def test_today_accepted(self, validator):
        assert validator.validate(make_form(date=TODAY.isoformat())).accepted is True

    def test_tomorrow_accepted(self, validator):
        result = validator.validate(make_form(date=(TODAY + timedelta(days=1)).isoformat()))
        assert result.accepted is True

    @pytest.mark.parametrize("value", ["not-a-date", "2030-02-30", "15/01/2030", "20300115"])
    def test_unparseable_dates_rejected(self, validator, value):
        assert validator.validate(make_form(date=value)).reason == self.MESSAGE

    def test_default_clock_uses_current_date(self):
        validator = DepositValidator()
        assert validator.validate(make_form(date=date.today().isoformat())).accepted is True


class TestValidateOrRaise:
    """Exception form of the validator"""

    def test_raises_with_reason_and_rule(self, validator):
        with pytest.raises(DepositValidationError) as exc_info:
            validator.validate_or_raise(make_form(panNumber="abcde1234f"))
        assert exc_info.value.message == "PAN Number must be in the format ABCDE1234F."
        assert exc_info.value.rule == RuleCode.PAN_NUMBER
        assert isinstance(exc_info.value, ValueError)


class TestParsers:
    """Number and date parsing helpers"""

    def test_parse_number(self):
        assert parse_number("500") == Decimal("500")
        assert parse_number(" 500.25 ") == Decimal("500.25")
        assert parse_number(".5") == Decimal("0.5")
        assert parse_number("-3") == Decimal("-3")
        assert parse_number("") is None
        assert parse_number(None) is None
        assert parse_number("12abc") is None

    def test_parse_calendar_date(self):
        assert parse_calendar_date("2030-01-15") == date(2030, 1, 15)
        assert parse_calendar_date("2030-13-01") is None
        assert parse_calendar_date(None) is None


class TestRuleManifest:
    """Manifest consumed by the browser client"""

    def test_manifest_lists_rules_in_evaluation_order(self):
        manifest = rule_manifest()
        codes = [rule["code"] for rule in manifest["rules"]]
        assert codes == [code.value for code in RuleCode]
        assert codes == [rule.code.value for rule in DEPOSIT_RULES]

    def test_manifest_messages_match_validator(self, validator):
        messages = {rule["code"]: rule["message"] for rule in rule_manifest()["rules"]}

        result = validator.validate(make_form(panNumber="bad"))
        assert messages[result.rule.value] == result.reason

        result = validator.validate(make_form(amountInWords="12"))
        assert messages[result.rule.value] == result.reason

        form = make_form()
        del form["date"]
        result = validator.validate(form)
        assert messages["required"].format(field="date") == result.reason

    def test_manifest_field_order(self):
        manifest = rule_manifest()
        assert manifest["requiredFields"] == list(REQUIRED_FIELDS)
        assert manifest["rules"][0]["fields"] == list(REQUIRED_FIELDS)

    def test_manifest_patterns(self):
        rules = {rule["code"]: rule for rule in rule_manifest()["rules"]}
        assert rules["account_number"]["pattern"] == r"^[A-Za-z0-9]{10,12}$"
        assert rules["pan_number"]["pattern"] == r"^[A-Z]{5}[0-9]{4}[A-Z]$"
        assert rules["pan_number"]["field"] == "panNumber"
        assert rules["amount_in_words"]["pattern"] == NUMERIC_TEXT_PATTERN
