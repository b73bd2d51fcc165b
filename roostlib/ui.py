"""
Roost User Interface Components

Display and interaction helpers for the command line:
- Tabular listing of accounts with truncation
- Detailed single-account view with timestamp formatting
- Password strength summaries for generated or entered passwords
- Validated choice prompts

Secrets are only printed when a caller passes them in explicitly; the
account records themselves carry ciphertext.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from prompt_toolkit import prompt

from .model import Account

# Column truncation widths for the account table
COLUMN_LIMITS = {
    'platform': 30,
    'username': 24,
    'group': 15,
}

# ==============================================================================
# FORMATTING HELPERS
# ==============================================================================

def format_timestamp(timestamp: Optional[float], with_time: bool = True) -> str:
    """Render a UNIX timestamp in local time; empty for missing values."""
    if not timestamp:
        return ''
    try:
        pattern = "%Y/%m/%d %H:%M:%S" if with_time else "%Y/%m/%d"
        return datetime.fromtimestamp(float(timestamp)).strftime(pattern)
    except (ValueError, TypeError, OSError):
        return str(timestamp)


def _truncate(value: str, limit: int) -> str:
    value = value or ''
    if len(value) <= limit:
        return value
    return value[:limit - 1] + '…'


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[str]:
    """
    Lay out rows as an aligned ASCII table.

    Returns:
        List[str]: Header line, separator line, then one line per row
    """
    widths = [len(header) for header in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = [' | '.join(header.ljust(widths[i]) for i, header in enumerate(headers))]
    lines.append('-+-'.join('-' * width for width in widths))
    for row in rows:
        lines.append(' | '.join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)))
    return lines

# ==============================================================================
# ACCOUNT DISPLAY FUNCTIONS
# ==============================================================================

def display_accounts_table(accounts: List[Account]) -> None:
    """
    Print accounts as a table.

    Example Output:
        ID               | Platform | Username | Group | Created
        -----------------+----------+----------+-------+-----------
        3f9a0c1d2b4e5f60 | GitHub   | octocat  | Work  | 2024/05/01
    """
    if not accounts:
        print("[-] No accounts found")
        return

    headers = ['ID', 'Platform', 'Username', 'Group', 'Created']
    rows = []
    for account in accounts:
        rows.append([
            account.id,
            _truncate(account.platform, COLUMN_LIMITS['platform']),
            _truncate(account.username or account.email, COLUMN_LIMITS['username']),
            _truncate(account.group, COLUMN_LIMITS['group']),
            format_timestamp(account.created_at, with_time=False),
        ])

    for line in render_table(headers, rows):
        print(line)
    print(f"\n[i] {len(accounts)} account(s)")


def display_account(account: Account, password: Optional[str] = None) -> None:
    """
    Print every field of one account.

    Args:
        account (Account): Record to show
        password (str, optional): Decrypted secret. When omitted the
            password line is masked.
    """
    print("=" * 50)
    print(f"Account {account.id}")
    print("=" * 50)
    print(f"Platform:    {account.platform}")
    print(f"Username:    {account.username}")
    print(f"Email:       {account.email}")
    print(f"URL:         {account.url}")
    print(f"Group:       {account.group}")
    print(f"Password:    {password if password is not None else '********'}")
    if account.notes:
        print("Notes:")
        for line in account.notes.splitlines():
            print(f"  {line}")
    print(f"Created:     {format_timestamp(account.created_at)}")
    print(f"Updated:     {format_timestamp(account.updated_at)}")
    print("=" * 50)


def display_groups(groups: List[str]) -> None:
    if not groups:
        print("[-] No groups defined")
        return
    print("Groups:")
    for group in groups:
        print(f"  - {group}")


def display_password_strength(analysis: dict) -> None:
    """Print the result of estimate_password_strength()."""
    print(f"[i] Strength: {analysis['strength']} (~{analysis['entropy_bits']} bits)")
    for item in analysis.get('feedback', []):
        print(f"    - {item}")

# ==============================================================================
# USER INTERACTION HELPERS
# ==============================================================================

def get_user_choice(message: str, valid_choices: List[str], default: Optional[str] = None) -> str:
    """
    Prompt until the user enters one of ``valid_choices``.

    Empty input returns ``default`` when one is given.
    """
    while True:
        choice = prompt(message).strip().lower()

        if not choice and default is not None:
            return default

        if choice in valid_choices:
            return choice

        print(f"[-] Invalid choice. Options: {', '.join(valid_choices)}")


def confirm(message: str) -> bool:
    """Yes/no prompt defaulting to no."""
    return get_user_choice(f"{message} [y/N]: ", ['y', 'n', 'yes', 'no'], default='n') in ('y', 'yes')


__all__ = [
    'format_timestamp',
    'render_table',
    'display_accounts_table',
    'display_account',
    'display_groups',
    'display_password_strength',
    'get_user_choice',
    'confirm',
]
