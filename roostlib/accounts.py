"""
Account collection operations.

Plain functions over the in-memory list of accounts. They do no locking and
no I/O; VaultStorage composes them inside its locked methods.
"""

from typing import Dict, Iterable, List, Optional

from .errors import AccountNotFoundError, InvalidAccountError
from .model import Account, SEARCHABLE_FIELDS


def find_index(accounts: List[Account], account_id: str) -> int:
    """
    Locate an account by identifier.

    Returns:
        int: Position in the list

    Raises:
        AccountNotFoundError: If no account has that id
    """
    for index, account in enumerate(accounts):
        if account.id == account_id:
            return index
    raise AccountNotFoundError(f"account ID {account_id} not found")


def find_account(accounts: List[Account], account_id: str) -> Account:
    return accounts[find_index(accounts, account_id)]


def next_sort_order(accounts: List[Account]) -> int:
    """One past the largest sort_order in use (1 for an empty list)."""
    return max((account.sort_order for account in accounts), default=0) + 1


def append_account(accounts: List[Account], account: Account) -> None:
    if any(existing.id == account.id for existing in accounts):
        raise InvalidAccountError(f"account ID {account.id} already exists")
    accounts.append(account)


def replace_account(accounts: List[Account], account: Account) -> Account:
    """
    Swap in a new version of an existing account.

    The stored creation timestamp always wins over the one on ``account``.

    Returns:
        Account: The version that was replaced
    """
    index = find_index(accounts, account.id)
    previous = accounts[index]
    account.created_at = previous.created_at
    accounts[index] = account
    return previous


def remove_account(accounts: List[Account], account_id: str) -> Account:
    return accounts.pop(find_index(accounts, account_id))


def matches_query(account: Account, query: str) -> bool:
    """Case-insensitive substring match over the searchable text fields."""
    needle = query.lower()
    return any(needle in (getattr(account, name) or "").lower() for name in SEARCHABLE_FIELDS)


def search_accounts(accounts: Iterable[Account], query: str) -> List[Account]:
    """
    Filter accounts by a free-text query.

    An empty query returns every account; a query that matches nothing
    returns an empty list.
    """
    if not query:
        return list(accounts)
    return [account for account in accounts if matches_query(account, query)]


def list_groups(accounts: Iterable[Account]) -> List[str]:
    """Sorted, de-duplicated non-empty group names."""
    return sorted({account.group for account in accounts if account.group})


def filter_by_group(accounts: Iterable[Account], group: str) -> List[Account]:
    """
    Accounts belonging to ``group`` ordered by sort_order.

    An empty group name selects ungrouped accounts.
    """
    selected = [account for account in accounts if (account.group or "") == (group or "")]
    return sorted(selected, key=lambda account: account.sort_order)


def apply_order(accounts: List[Account], account_ids: List[str],
                group: Optional[str] = None) -> List[Account]:
    """
    Assign consecutive sort_order values following ``account_ids``.

    Without a group, numbering starts at 1. With a group, numbering starts at
    the group's current smallest sort_order so the group keeps its place in
    the global ordering, and every id must belong to that group.

    Returns:
        List[Account]: The accounts that were renumbered

    Raises:
        AccountNotFoundError: If an id is unknown
        InvalidAccountError: If an id is outside ``group``
    """
    by_id: Dict[str, Account] = {account.id: account for account in accounts}

    targets = []
    for account_id in account_ids:
        account = by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"account ID {account_id} not found")
        if group is not None and (account.group or "") != group:
            raise InvalidAccountError(f"account {account_id} does not belong to group {group!r}")
        targets.append(account)

    start = 1
    if group is not None:
        members = [account.sort_order for account in accounts if (account.group or "") == group]
        if members:
            start = min(members)

    for offset, account in enumerate(targets):
        account.sort_order = start + offset

    return targets


__all__ = [
    "find_index",
    "find_account",
    "next_sort_order",
    "append_account",
    "replace_account",
    "remove_account",
    "matches_query",
    "search_accounts",
    "list_groups",
    "filter_by_group",
    "apply_order",
]
