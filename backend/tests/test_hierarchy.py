from decimal import Decimal

from accountcore.models.enums import AccountType, BalanceSide
from accountcore.services.hierarchy import (
    AccountRecord,
    account_level,
    allows_child,
    ancestor_codes,
    build_tree,
    infer_type_from_code,
    natural_balance,
    parent_code_of,
)


def _record(record_id: int, code: str, account_type: AccountType, parent_id: int | None = None) -> AccountRecord:
    return AccountRecord(
        id=record_id,
        code=code,
        name=f"Account {code}",
        type=account_type,
        is_detail=False,
        is_active=True,
        parent_id=parent_id,
    )


def _ids(nodes) -> list[int]:
    return [node.account.id for root in nodes for node in root.walk()]


def test_child_type_compatibility_matrix() -> None:
    assert allows_child(AccountType.asset, AccountType.asset)
    assert allows_child(AccountType.expense, AccountType.cost)
    assert allows_child(AccountType.expense, AccountType.expense)
    assert not allows_child(AccountType.asset, AccountType.liability)
    assert not allows_child(AccountType.revenue, AccountType.expense)
    assert not allows_child(AccountType.cost, AccountType.cost)


def test_natural_balance_keeps_non_negative_net_on_natural_side() -> None:
    assert natural_balance(AccountType.asset, Decimal("500"), Decimal("0")) == (Decimal("500"), BalanceSide.debit)
    assert natural_balance(AccountType.asset, Decimal("0"), Decimal("20")) == (Decimal("-20"), BalanceSide.credit)
    assert natural_balance(AccountType.revenue, Decimal("0"), Decimal("75")) == (Decimal("75"), BalanceSide.credit)
    assert natural_balance(AccountType.liability, Decimal("0"), Decimal("0")) == (Decimal("0"), BalanceSide.credit)


def test_parent_code_walks_segments_then_first_segment_digits() -> None:
    assert parent_code_of("111-100-001") == "111-100-000"
    assert parent_code_of("111-100-000") == "111-000-000"
    assert parent_code_of("111-000-000") == "110-000-000"
    assert parent_code_of("110-000-000") == "100-000-000"
    assert parent_code_of("100-000-000") is None
    assert parent_code_of("1105") is None
    assert ancestor_codes("111-100-000") == ["111-000-000", "110-000-000", "100-000-000"]


def test_type_inferred_from_leading_digit() -> None:
    assert infer_type_from_code("410-000-000") == AccountType.revenue
    assert infer_type_from_code("510-001-000") == AccountType.cost
    assert infer_type_from_code("999-000-000") is None


def test_account_level_for_canonical_and_legacy_codes() -> None:
    assert account_level("100-000-000") == 1
    assert account_level("110-000-000") == 2
    assert account_level("111-000-000") == 3
    assert account_level("111-100-000") == 4
    assert account_level("111-100-001") == 5
    assert account_level("100") == 1
    assert account_level("110") == 2
    assert account_level("111") == 3
    assert account_level("1.1.02") == 3


def test_build_tree_attaches_compatible_children_sorted_by_code() -> None:
    roots = build_tree(
        [
            _record(3, "112", AccountType.asset, parent_id=2),
            _record(1, "100", AccountType.asset),
            _record(2, "110", AccountType.asset, parent_id=1),
            _record(4, "111", AccountType.asset, parent_id=2),
            _record(5, "600", AccountType.expense),
            _record(6, "610", AccountType.cost, parent_id=5),
        ]
    )

    assert [root.account.code for root in roots] == ["100", "600"]
    assets = roots[0]
    assert [child.account.code for child in assets.children] == ["110"]
    assert [child.account.code for child in assets.children[0].children] == ["111", "112"]
    assert roots[1].children[0].account.type == AccountType.cost


def test_build_tree_promotes_incompatible_or_orphaned_records_to_roots() -> None:
    roots = build_tree(
        [
            _record(1, "500", AccountType.cost),
            _record(2, "510", AccountType.cost, parent_id=1),
            _record(3, "200", AccountType.liability),
            _record(4, "120", AccountType.asset, parent_id=3),
            _record(5, "130", AccountType.asset, parent_id=99),
        ]
    )

    assert sorted(root.account.id for root in roots) == [1, 2, 3, 4, 5]
    assert all(not root.children for root in roots)


def test_build_tree_breaks_declared_cycles_and_keeps_every_node_once() -> None:
    records = [
        _record(1, "100", AccountType.asset, parent_id=2),
        _record(2, "110", AccountType.asset, parent_id=1),
        _record(3, "111", AccountType.asset, parent_id=3),
        _record(4, "120", AccountType.asset),
        _record(4, "120", AccountType.asset),
    ]

    roots = build_tree(records)
    ids = _ids(roots)

    assert sorted(ids) == [1, 2, 3, 4]
    assert len(ids) == len(set(ids))
