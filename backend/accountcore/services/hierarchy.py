"""Chart-of-accounts hierarchy rules.

Accounts are handled as flat records keyed by id with ``parent_id`` links; every
walk over those links keeps a visited set so a corrupted chain can never loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal

from accountcore.models.account import Account
from accountcore.models.enums import AccountType, BalanceSide


PARENT_CAPABLE_TYPES: frozenset[AccountType] = frozenset(
    {
        AccountType.asset,
        AccountType.liability,
        AccountType.equity,
        AccountType.revenue,
        AccountType.expense,
    }
)
LEAF_ONLY_TYPES: frozenset[AccountType] = frozenset({AccountType.cost})

ALLOWED_CHILDREN: dict[AccountType, frozenset[AccountType]] = {
    AccountType.asset: frozenset({AccountType.asset}),
    AccountType.liability: frozenset({AccountType.liability}),
    AccountType.equity: frozenset({AccountType.equity}),
    AccountType.revenue: frozenset({AccountType.revenue}),
    AccountType.expense: frozenset({AccountType.expense, AccountType.cost}),
    AccountType.cost: frozenset(),
}

DEBIT_NATURE_TYPES: frozenset[AccountType] = frozenset(
    {AccountType.asset, AccountType.expense, AccountType.cost}
)

# Leading digit of a canonical code -> nature type.
CODE_PREFIX_TYPES: dict[str, AccountType] = {
    "1": AccountType.asset,
    "2": AccountType.liability,
    "3": AccountType.equity,
    "4": AccountType.revenue,
    "5": AccountType.cost,
    "6": AccountType.expense,
}

CANONICAL_CODE_RE = re.compile(r"^\d{3}-\d{3}-\d{3}$")
ZERO_SEGMENT = "000"


def coerce_account_type(value: AccountType | str | None) -> AccountType | None:
    if value is None:
        return None
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(str(value).strip().lower())
    except ValueError:
        return None


def is_parent_capable(account_type: AccountType) -> bool:
    return account_type in PARENT_CAPABLE_TYPES


def is_leaf_only(account_type: AccountType) -> bool:
    return account_type in LEAF_ONLY_TYPES


def allows_child(parent_type: AccountType, child_type: AccountType) -> bool:
    return child_type in ALLOWED_CHILDREN.get(parent_type, frozenset())


def is_debit_nature(account_type: AccountType) -> bool:
    return account_type in DEBIT_NATURE_TYPES


def natural_side(account_type: AccountType) -> BalanceSide:
    return BalanceSide.debit if is_debit_nature(account_type) else BalanceSide.credit


def natural_balance(
    account_type: AccountType,
    debit_sum: Decimal,
    credit_sum: Decimal,
) -> tuple[Decimal, BalanceSide]:
    """Signed balance on the account's natural side and the side it sits on.

    A non-negative net sits on the natural side; a negative net on the opposite one.
    """
    if is_debit_nature(account_type):
        net = debit_sum - credit_sum
        return net, BalanceSide.debit if net >= 0 else BalanceSide.credit
    net = credit_sum - debit_sum
    return net, BalanceSide.credit if net >= 0 else BalanceSide.debit


def nature_increment(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    if is_debit_nature(account_type):
        return debit - credit
    return credit - debit


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def is_canonical_code(code: str) -> bool:
    return bool(CANONICAL_CODE_RE.match(code))


def _significant_length(segment: str) -> int:
    return len(segment.rstrip("0"))


def parent_code_of(code: str) -> str | None:
    """Code of the grouping account one level up, or None at the top.

    ``111-100-000 -> 111-000-000 -> 110-000-000 -> 100-000-000 -> None``.
    Legacy codes have no derivable parent.
    """
    if not is_canonical_code(code):
        return None
    first, second, third = code.split("-")
    if third != ZERO_SEGMENT:
        return f"{first}-{second}-{ZERO_SEGMENT}"
    if second != ZERO_SEGMENT:
        return f"{first}-{ZERO_SEGMENT}-{ZERO_SEGMENT}"
    depth = _significant_length(first)
    if depth <= 1:
        return None
    parent_first = first[: depth - 1] + "0" * (len(first) - depth + 1)
    return f"{parent_first}-{ZERO_SEGMENT}-{ZERO_SEGMENT}"


def ancestor_codes(code: str) -> list[str]:
    """Ancestor codes, nearest first."""
    ancestors: list[str] = []
    seen = {code}
    current = parent_code_of(code)
    while current is not None and current not in seen:
        ancestors.append(current)
        seen.add(current)
        current = parent_code_of(current)
    return ancestors


def infer_type_from_code(code: str) -> AccountType | None:
    normalized = normalize_code(code)
    if not normalized:
        return None
    return CODE_PREFIX_TYPES.get(normalized[0])


def account_level(code: str) -> int:
    """Hierarchy level derived from the code structure, 1-indexed.

    Canonical codes count the significant digit positions of the first segment
    plus one per non-zero later segment. Legacy codes fall back to their
    separators or digit length.
    """
    normalized = normalize_code(code)
    if is_canonical_code(normalized):
        first, second, third = normalized.split("-")
        level = _significant_length(first)
        level += sum(1 for segment in (second, third) if segment != ZERO_SEGMENT)
        return max(level, 1)
    if "." in normalized:
        return len(normalized.split("."))
    if "-" in normalized:
        return len(normalized.split("-"))

    digits = re.sub(r"\D", "", normalized)
    if digits and len(digits) <= 3 and digits == normalized:
        return max(_significant_length(digits), 1)
    length = len(digits)
    if length <= 1:
        return 1
    if length <= 2:
        return 2
    if length <= 4:
        return 3
    if length <= 6:
        return 4
    return 5


@dataclass(frozen=True)
class AccountRecord:
    id: int
    code: str
    name: str
    type: AccountType
    is_detail: bool
    is_active: bool
    parent_id: int | None = None
    currency_id: int | None = None
    description: str | None = None
    detail_type: str | None = None

    @classmethod
    def from_model(cls, account: Account) -> "AccountRecord":
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            type=coerce_account_type(account.type) or AccountType.asset,
            is_detail=account.is_detail,
            is_active=account.is_active,
            parent_id=account.parent_id,
            currency_id=account.currency_id,
            description=account.description,
            detail_type=account.detail_type,
        )

    @property
    def level(self) -> int:
        return account_level(self.code)


@dataclass
class AccountNode:
    account: AccountRecord
    children: list["AccountNode"] = field(default_factory=list)

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


def _sort_key(node: AccountNode) -> tuple[str, str]:
    return node.account.code, node.account.name


def _declared_chain_has_cycle(record: AccountRecord, by_id: dict[int, AccountRecord]) -> bool:
    visited: set[int] = {record.id}
    current_id = record.parent_id
    while current_id is not None:
        if current_id in visited:
            return True
        visited.add(current_id)
        current = by_id.get(current_id)
        if current is None:
            return False
        current_id = current.parent_id
    return False


def _can_attach(record: AccountRecord, by_id: dict[int, AccountRecord]) -> bool:
    if record.parent_id is None:
        return False
    parent = by_id.get(record.parent_id)
    if parent is None:
        return False
    if not is_parent_capable(parent.type) or not allows_child(parent.type, record.type):
        return False
    return not _declared_chain_has_cycle(record, by_id)


def build_tree(records: list[AccountRecord]) -> list[AccountNode]:
    """Arrange flat records into a forest.

    A record hangs under its declared parent only when that parent is present,
    accepts the record's type and the link closes no cycle; otherwise it becomes
    a root. Every input id appears exactly once.
    """
    by_id: dict[int, AccountRecord] = {}
    for record in records:
        by_id.setdefault(record.id, record)

    nodes = {record_id: AccountNode(account=record) for record_id, record in by_id.items()}
    roots: list[AccountNode] = []
    for record_id, record in by_id.items():
        node = nodes[record_id]
        if _can_attach(record, by_id):
            nodes[record.parent_id].children.append(node)
        else:
            roots.append(node)

    for node in nodes.values():
        node.children.sort(key=_sort_key)
    roots.sort(key=_sort_key)
    return roots
