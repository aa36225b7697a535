"""
Tests for the reconciliation engine.

Tests deterministic merging:
- normalized email as primary key
- normalized name as second pass
- last-write-wins display attributes
- first-seen ordering
"""

from decimal import Decimal

from services.donation_ledger.models import Donation, Platform, Pledge
from services.donation_ledger.reconcile import (
    email_key,
    group_and_fold,
    name_key,
    reconcile,
    reconcile_pledges,
)


P = Platform.BUYMEACOFFEE


def pledge(amount, email=None, name=None, is_private=False) -> Pledge:
    return Pledge(
        platform=P,
        amount=Decimal(str(amount)),
        name=name,
        email=email,
        is_private=is_private,
    )


class TestGroupAndFold:
    """Test the generic grouping primitive."""

    def test_sums_amounts_and_keeps_last_attributes(self):
        """Test Foo(5) then Bar(3) on one email merges into Bar(8)."""
        merged = group_and_fold(
            [pledge(5, email="x", name="Foo"), pledge(3, email="x", name="Bar")],
            key=lambda p: p.email,
        )

        assert len(merged) == 1
        assert merged[0].amount == Decimal("8")
        assert merged[0].name == "Bar"

    def test_none_key_is_never_merged(self):
        """Test keyless pledges each form their own group."""
        merged = group_and_fold(
            [pledge(1), pledge(2), pledge(3)],
            key=lambda p: None,
        )

        assert [p.amount for p in merged] == [Decimal(1), Decimal(2), Decimal(3)]

    def test_first_seen_order(self):
        """Test groups appear where their first member appeared."""
        merged = group_and_fold(
            [pledge(1, email="a"), pledge(2, email="b"), pledge(3, email="a")],
            key=lambda p: p.email,
        )

        assert [(p.email, p.amount) for p in merged] == [("a", Decimal(4)), ("b", Decimal(2))]

    def test_does_not_mutate_input(self):
        first = pledge(5, email="x", name="Foo")
        group_and_fold([first, pledge(3, email="x")], key=lambda p: p.email)
        assert first.amount == Decimal(5)


class TestKeys:
    """Test identity key extraction."""

    def test_email_key_prefers_email(self):
        assert email_key(pledge(1, email="A@X.com", name="Foo")) == ("email", "a@x.com")

    def test_email_key_falls_back_to_name(self):
        assert email_key(pledge(1, name=" Foo ")) == ("name", "foo")

    def test_email_key_none_without_identity(self):
        assert email_key(pledge(1)) is None

    def test_name_key(self):
        assert name_key(pledge(1, email="a@x.com", name="FOO")) == "foo"
        assert name_key(pledge(1, email="a@x.com")) is None


class TestReconcile:
    """Test the two-pass merge end to end."""

    def test_same_email_sums_exactly(self):
        """Test two pledges on one email become one donation with the exact sum."""
        donations = reconcile([
            pledge("10.10", email="a@x.com", name="Ann"),
            pledge("0.20", email="A@X.COM", name="Ann"),
        ])

        assert donations == [Donation(name="Ann", amount=Decimal("10.30"), platform=P)]

    def test_last_write_wins_for_name(self):
        """Test the later display name replaces the earlier one."""
        donations = reconcile([
            pledge(5, email="x", name="Foo"),
            pledge(3, email="x", name="Bar"),
        ])

        assert len(donations) == 1
        assert donations[0].amount == Decimal(8)
        assert donations[0].name == "Bar"

    def test_name_pass_merges_different_emails(self):
        """Test one display name used with two emails is merged."""
        donations = reconcile([
            pledge(5, email="old@x.com", name="Peter W"),
            pledge(7, email="other@x.com", name="Someone"),
            pledge(3, email="new@x.com", name="peter w"),
        ])

        assert [(d.name, d.amount) for d in donations] == [
            ("peter w", Decimal(8)),
            ("Someone", Decimal(7)),
        ]

    def test_email_takes_precedence_over_name(self):
        """Test email grouping runs first, then the merged name is matched."""
        donations = reconcile([
            pledge(1, email="a@x.com", name="Alias"),
            pledge(2, email="b@x.com", name="Real"),
            pledge(4, email="a@x.com", name="Real"),
        ])

        # a@x.com folds into "Real" (last write), then matches b@x.com by name
        assert len(donations) == 1
        assert donations[0].amount == Decimal(7)
        assert donations[0].name == "Real"

    def test_end_to_end_three_pledges(self):
        """Test 5 + 7 on one email and 3 on another yield 12 and 3."""
        donations = reconcile([
            pledge(5, email="a@x.com"),
            pledge(7, email="a@x.com"),
            pledge(3, email="b@x.com"),
        ])

        assert [d.to_dict() for d in donations] == [
            {"amount": 12, "platform": P.value},
            {"amount": 3, "platform": P.value},
        ]

    def test_anonymous_without_identity_not_merged(self):
        """Test pledges with neither name nor email stay separate."""
        donations = reconcile([pledge(4), pledge(4)])

        assert len(donations) == 2
        assert all(d.name is None for d in donations)

    def test_private_redacts_name_keeps_amount(self):
        """Test a private contributor is emitted without a name."""
        donations = reconcile([pledge(9, email="a@x.com", name="Secret", is_private=True)])

        assert donations == [Donation(name=None, amount=Decimal(9), platform=P)]

    def test_privacy_follows_last_record(self):
        """Test the last record's privacy flag decides."""
        donations = reconcile([
            pledge(1, email="a@x.com", name="Ann", is_private=True),
            pledge(1, email="a@x.com", name="Ann", is_private=False),
        ])

        assert donations[0].name == "Ann"

    def test_single_records_pass_through(self):
        pledges = [pledge(1, email="a", name="A"), pledge(2, email="b", name="B")]
        assert [p.amount for p in reconcile_pledges(pledges)] == [Decimal(1), Decimal(2)]

    def test_deterministic(self):
        """Test repeated runs over the same input are identical."""
        pledges = [
            pledge(5, email="x", name="Foo"),
            pledge(3, email="y", name="Foo"),
            pledge(2, email="x", name="Baz"),
        ]
        assert reconcile(pledges) == reconcile(list(pledges))
