"""
Deposit Validation Module

Ordered business rules for deposit slips. The rule table is evaluated
server-side before anything is stored, and exported as a JSON manifest that
the browser client evaluates before posting, so both surfaces apply the same
rules, in the same order, with the same messages.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Any

from .schemas import DepositRecord


# Canonical field order; presence is checked in this order
REQUIRED_FIELDS = (
    "bankName", "branchName", "date", "name", "accountNumber",
    "amountInNumbers", "amountInWords", "denominations", "totalAmount",
    "panNumber", "mailId",
)

# Patterns are written to be valid in both Python and JavaScript
ACCOUNT_NUMBER_PATTERN = r"^[A-Za-z0-9]{10,12}$"
PAN_NUMBER_PATTERN = r"^[A-Z]{5}[0-9]{4}[A-Z]$"
NUMBER_PATTERN = r"^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?$"
DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
# Anything a browser would read as a number, blank text and Infinity included
NUMERIC_TEXT_PATTERN = (
    r"^([+-]?(([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?|Infinity)"
    r"|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+)?$"
)

MISSING_FIELD_MESSAGE = "Missing required field: {field}"
ACCOUNT_NUMBER_MESSAGE = "Account Number must be alphanumeric and 10 to 12 characters long."
PAN_NUMBER_MESSAGE = "PAN Number must be in the format ABCDE1234F."
AMOUNT_NUMERIC_MESSAGE = "Amount fields must be valid numbers."
AMOUNT_POSITIVE_MESSAGE = "Amount fields must be greater than zero."
AMOUNT_MATCH_MESSAGE = "Amount in Numbers and Total Amount must match."
AMOUNT_IN_WORDS_MESSAGE = "Amount in Words must not be an integer."
DATE_NOT_PAST_MESSAGE = "Date must be today or later."


class RuleCode(Enum):
    """Identifiers of the deposit rules, in evaluation order"""
    REQUIRED = "required"
    ACCOUNT_NUMBER = "account_number"
    PAN_NUMBER = "pan_number"
    AMOUNT_NUMERIC = "amount_numeric"
    AMOUNT_POSITIVE = "amount_positive"
    AMOUNT_MATCH = "amount_match"
    AMOUNT_IN_WORDS = "amount_in_words"
    DATE_NOT_PAST = "date_not_past"


class DepositValidationError(ValueError):
    """Raised when a submitted deposit breaks one of the rules"""

    def __init__(self, message: str, rule: Optional[RuleCode] = None):
        super().__init__(message)
        self.message = message
        self.rule = rule


def parse_number(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a bare decimal literal.

    Returns None unless the whole value (ignoring surrounding whitespace) is
    a plain number: no thousands separators, currency symbols, NaN or
    infinity, and nothing that overflows a double.
    """
    if value is None:
        return None
    text = value.strip()
    if not re.fullmatch(NUMBER_PATTERN, text):
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not math.isfinite(float(number)):
        return None
    return number


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD calendar date, None when malformed or impossible"""
    if value is None:
        return None
    text = value.strip()
    if not re.fullmatch(DATE_PATTERN, text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


RuleCheck = Callable[[Mapping[str, str], date], Optional[str]]


@dataclass(frozen=True)
class ValidationRule:
    """One entry of the rule table"""
    code: RuleCode
    message: str
    check: RuleCheck
    params: Dict[str, Any] = field(default_factory=dict)

    def to_manifest(self) -> Dict[str, Any]:
        entry = {"code": self.code.value, "message": self.message}
        entry.update(self.params)
        return entry


def _check_required(form: Mapping[str, str], today: date) -> Optional[str]:
    for name in REQUIRED_FIELDS:
        if not form.get(name):
            return MISSING_FIELD_MESSAGE.format(field=name)
    return None


def _pattern_check(field_name: str, pattern: str, message: str) -> RuleCheck:
    def check(form: Mapping[str, str], today: date) -> Optional[str]:
        if re.fullmatch(pattern, form[field_name]):
            return None
        return message
    return check


def _amounts(form: Mapping[str, str]):
    return parse_number(form["amountInNumbers"]), parse_number(form["totalAmount"])


def _check_amount_numeric(form: Mapping[str, str], today: date) -> Optional[str]:
    amount, total = _amounts(form)
    if amount is None or total is None:
        return AMOUNT_NUMERIC_MESSAGE
    return None


def _check_amount_positive(form: Mapping[str, str], today: date) -> Optional[str]:
    amount, total = _amounts(form)
    if amount <= 0 or total <= 0:
        return AMOUNT_POSITIVE_MESSAGE
    return None


def _check_amount_match(form: Mapping[str, str], today: date) -> Optional[str]:
    amount, total = _amounts(form)
    if amount != total:
        return AMOUNT_MATCH_MESSAGE
    return None


def looks_numeric(value: str) -> bool:
    """True when the text would be read as a number rather than words"""
    return re.fullmatch(NUMERIC_TEXT_PATTERN, value.strip()) is not None


def _check_amount_in_words(form: Mapping[str, str], today: date) -> Optional[str]:
    if looks_numeric(form["amountInWords"]):
        return AMOUNT_IN_WORDS_MESSAGE
    return None


def _check_date_not_past(form: Mapping[str, str], today: date) -> Optional[str]:
    deposit_date = parse_calendar_date(form["date"])
    if deposit_date is None or deposit_date < today:
        return DATE_NOT_PAST_MESSAGE
    return None


# Evaluation order matters: later rules assume earlier ones passed
DEPOSIT_RULES: List[ValidationRule] = [
    ValidationRule(
        RuleCode.REQUIRED, MISSING_FIELD_MESSAGE, _check_required,
        {"fields": list(REQUIRED_FIELDS)}
    ),
    ValidationRule(
        RuleCode.ACCOUNT_NUMBER, ACCOUNT_NUMBER_MESSAGE,
        _pattern_check("accountNumber", ACCOUNT_NUMBER_PATTERN, ACCOUNT_NUMBER_MESSAGE),
        {"field": "accountNumber", "pattern": ACCOUNT_NUMBER_PATTERN}
    ),
    ValidationRule(
        RuleCode.PAN_NUMBER, PAN_NUMBER_MESSAGE,
        _pattern_check("panNumber", PAN_NUMBER_PATTERN, PAN_NUMBER_MESSAGE),
        {"field": "panNumber", "pattern": PAN_NUMBER_PATTERN}
    ),
    ValidationRule(
        RuleCode.AMOUNT_NUMERIC, AMOUNT_NUMERIC_MESSAGE, _check_amount_numeric,
        {"fields": ["amountInNumbers", "totalAmount"]}
    ),
    ValidationRule(
        RuleCode.AMOUNT_POSITIVE, AMOUNT_POSITIVE_MESSAGE, _check_amount_positive,
        {"fields": ["amountInNumbers", "totalAmount"]}
    ),
    ValidationRule(
        RuleCode.AMOUNT_MATCH, AMOUNT_MATCH_MESSAGE, _check_amount_match,
        {"fields": ["amountInNumbers", "totalAmount"]}
    ),
    ValidationRule(
        RuleCode.AMOUNT_IN_WORDS, AMOUNT_IN_WORDS_MESSAGE, _check_amount_in_words,
        {"field": "amountInWords", "pattern": NUMERIC_TEXT_PATTERN}
    ),
    ValidationRule(
        RuleCode.DATE_NOT_PAST, DATE_NOT_PAST_MESSAGE, _check_date_not_past,
        {"field": "date", "pattern": DATE_PATTERN}
    ),
]


@dataclass
class ValidationResult:
    """Outcome of validating one submission"""
    accepted: bool
    record: Optional[DepositRecord] = None
    reason: Optional[str] = None
    rule: Optional[RuleCode] = None

    @classmethod
    def accept(cls, record: DepositRecord) -> 'ValidationResult':
        return cls(accepted=True, record=record)

    @classmethod
    def reject(cls, reason: str, rule: RuleCode) -> 'ValidationResult':
        return cls(accepted=False, reason=reason, rule=rule)


class DepositValidator:
    """
    Evaluates a submitted form against the deposit rule table.

    Rules run in table order and evaluation stops at the first failure, so a
    rejection always names exactly one reason. The validator holds no state
    besides the rule table and the clock used for the date rule.
    """

    def __init__(self, rules: Optional[List[ValidationRule]] = None,
                 today: Callable[[], date] = date.today):
        self.rules = rules if rules is not None else DEPOSIT_RULES
        self._today = today

    def validate(self, form: Mapping[str, str]) -> ValidationResult:
        today = self._today()
        for rule in self.rules:
            reason = rule.check(form, today)
            if reason is not None:
                return ValidationResult.reject(reason, rule.code)

        record = DepositRecord(**{name: form[name] for name in REQUIRED_FIELDS})
        return ValidationResult.accept(record)

    def validate_or_raise(self, form: Mapping[str, str]) -> DepositRecord:
        """Validate and return the record, raising DepositValidationError on rejection"""
        result = self.validate(form)
        if not result.accepted:
            raise DepositValidationError(result.reason, result.rule)
        return result.record


def rule_manifest(rules: Optional[List[ValidationRule]] = None) -> Dict[str, Any]:
    """JSON-serialisable description of the rule table for the browser client"""
    rules = rules if rules is not None else DEPOSIT_RULES
    return {
        "requiredFields": list(REQUIRED_FIELDS),
        "numberPattern": NUMBER_PATTERN,
        "rules": [rule.to_manifest() for rule in rules],
    }
