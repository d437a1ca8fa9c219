"""Tests for the pattern extraction rules and intent classification."""

import pytest

from agentpay.models import Entities, Schedule
from agentpay.services.extraction import (
    classify_intent,
    extract_address,
    extract_amount,
    extract_description,
    extract_email,
    extract_entities,
    extract_schedule,
    extract_username,
)


ADDRESS = "GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H"
CONTRACT = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"


class TestExtractAmount:
    """Tests for the amount/currency rule."""

    def test_amount_with_currency(self):
        """Number followed by a currency token."""
        assert extract_amount("Send 50 USDC to @alice") == {"amount": 50.0, "currency": "USDC"}

    def test_currency_is_case_insensitive(self):
        """Currency tokens are normalised to uppercase."""
        assert extract_amount("pay 12.5xlm") == {"amount": 12.5, "currency": "XLM"}

    def test_defaults_to_xlm_without_currency(self):
        """A bare number is XLM."""
        assert extract_amount("send 7 to @bob") == {"amount": 7.0, "currency": "XLM"}

    def test_first_number_wins(self):
        """Only the first amount is taken."""
        assert extract_amount("send 3 BTC and 4 ETH")["amount"] == 3.0

    def test_no_number_returns_nothing(self):
        """No amount and no default currency when nothing matches."""
        assert extract_amount("what is my balance") == {}

    def test_digits_inside_address_are_not_amounts(self):
        """Digits embedded in an address or username are skipped."""
        assert extract_amount(f"pay {ADDRESS}") == {}
        assert extract_amount("pay @bob42") == {}

    def test_unrecognised_token_keeps_default_currency(self):
        """A token that is not a known currency is ignored."""
        assert extract_amount("send 10 DOGE") == {"amount": 10.0, "currency": "XLM"}


class TestExtractRecipient:
    """Tests for the address, email and username rules."""

    def test_account_address(self):
        """56-character G... keys are addresses."""
        assert extract_address(f"Send 10 XLM to {ADDRESS}") == {"recipient": ADDRESS}

    def test_contract_address(self):
        """56-character C... ids are addresses too."""
        assert extract_address(f"pay {CONTRACT}") == {"recipient": CONTRACT}

    def test_short_key_is_not_an_address(self):
        """Truncated keys do not match."""
        assert extract_address(f"pay {ADDRESS[:40]}") == {}

    def test_username(self):
        """@name is both recipient and username."""
        assert extract_username("ask @alice for lunch") == {"recipient": "@alice", "username": "@alice"}

    def test_email_is_not_a_username(self):
        """The @ inside an email address is not a username."""
        assert extract_username("send 5 to bob@example.com") == {}
        assert extract_email("send 5 to bob@example.com") == {"recipient": "bob@example.com"}


class TestExtractDescriptionAndSchedule:
    """Tests for the description and recurrence rules."""

    def test_description_until_end(self):
        """Text after "for" up to the end of the string."""
        assert extract_description("Ask 50 USDC from @alice for design work") == {"description": "design work"}

    def test_description_stops_at_to(self):
        """Text after "for" stops at "to"."""
        assert extract_description("send 5 XLM for coffee to @bob") == {"description": "coffee"}

    def test_no_description(self):
        assert extract_description("send 5 XLM to @bob") == {}

    @pytest.mark.parametrize("text,days", [
        ("pay @bob 10 monthly", 30),
        ("pay @bob 10 weekly", 7),
        ("pay @bob 10 daily", 1),
        ("daily or weekly, pay monthly", 30),
    ])
    def test_recurrence_keywords(self, text, days):
        """monthly beats weekly beats daily."""
        assert extract_schedule(text) == {"schedule": Schedule(interval_days=days)}

    def test_no_recurrence(self):
        assert extract_schedule("pay @bob 10") == {}


class TestExtractEntities:
    """Tests for the ordered extraction driver."""

    def test_address_beats_username(self):
        """An address found earlier stays the recipient; the username is kept aside."""
        entities = extract_entities(f"Send 10 XLM to {ADDRESS} cc @bob")

        assert entities.recipient == ADDRESS
        assert entities.username == "@bob"

    def test_username_used_when_no_address(self):
        entities = extract_entities("Send 10 XLM to @bob")

        assert entities.recipient == "@bob"
        assert entities.username == "@bob"

    def test_empty_text_has_no_entities(self):
        assert extract_entities("") == Entities()

    def test_custom_rule_order(self):
        """Earlier rules take precedence per field."""
        rules = [extract_username, extract_address]
        entities = extract_entities(f"pay @bob {ADDRESS}", rules)

        assert entities.recipient == "@bob"


class TestClassifyIntent:
    """Tests for keyword precedence."""

    @pytest.mark.parametrize("text,intent", [
        ("Send 10 XLM to @bob", "request"),
        ("Transfer 5 to @carol", "request"),
        ("Ask 50 USDC from @alice", "request"),
        ("Create an invoice for @dave", "request"),
        ("Refund @bob", "refund"),
        ("Schedule 100 XLM monthly to @bob", "schedule"),
        ("100 XLM to @bob monthly", "schedule"),
        ("Set up a recurring 5 XLM to @bob", "schedule"),
        ("Cancel 20 XLM to @bob", "cancel"),
        ("Stop the 20 XLM to @bob", "cancel"),
        ("What is my balance", "query"),
        ("", "query"),
    ])
    def test_intent_by_keyword(self, text, intent):
        assert classify_intent(text) == intent

    def test_earlier_group_wins(self):
        """send/pay is checked before refund and cancel."""
        assert classify_intent("refund and send it back") == "request"
        assert classify_intent("cancel the monthly payment") == "request"
