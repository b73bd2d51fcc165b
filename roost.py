#!/usr/bin/env python3
"""
Roost Password Manager
A local, terminal-based credential vault: every account lives in one file
encrypted under a single master password.
"""

# ==============================================================================
# STANDARD LIBRARY IMPORTS
# ==============================================================================
import sys
import argparse
import logging
import warnings
from typing import Dict, List, Optional

# ==============================================================================
# THIRD-PARTY LIBRARY IMPORTS
# ==============================================================================
from prompt_toolkit import prompt

# ==============================================================================
# CUSTOM MODULE IMPORTS
# ==============================================================================
from roostlib import config, password_generator, ui, validation
from roostlib.clipboard import ClipboardError, copy_to_clipboard, get_clipboard_manager
from roostlib.errors import VaultError, VaultNotFoundError, InsecureExportWarning
from roostlib.storage import VaultStorage

__version__ = "1.0.0"

logger = logging.getLogger("roost")

# Account options shared by add/update
FIELD_OPTIONS = ('platform', 'username', 'email', 'url', 'notes', 'group')


def mask_password(password: str) -> str:
    """Show the first and last three characters only."""
    if len(password) <= 6:
        return '*' * len(password)
    return f"{password[:3]}{'*' * (len(password) - 6)}{password[-3:]}"


def wait_for_clipboard_clear() -> None:
    """
    Hold the process open until a scheduled clipboard clear has run.

    The clear timer dies with the interpreter, so a command that copied a
    password waits here instead of leaving the secret on the clipboard.
    Ctrl+C clears immediately.
    """
    manager = get_clipboard_manager()
    if not manager.has_pending_clear:
        return

    print(f"[i] Clearing clipboard in {config.CLIPBOARD_CLEAR_SECONDS}s (Ctrl+C to clear now)")
    try:
        manager.wait_pending()
    except KeyboardInterrupt:
        try:
            manager.clear()
        except ClipboardError as e:
            print(f"[-] {e}")
            return
    print("[+] Clipboard cleared")


# ==============================================================================
# MAIN ROOST CLASS
# ==============================================================================

class Roost:
    """
    Command controller for one CLI invocation.

    Owns the VaultStorage session, routes each subcommand to the engine and
    turns results into status lines.
    """

    def __init__(self, data_dir: str):
        self.storage = VaultStorage(data_dir)

    # ==========================================================================
    # SESSION HELPERS
    # ==========================================================================

    def _unlock(self) -> None:
        """Prompt for the master password and unlock the vault."""
        if not self.storage.vault_exists():
            print("[i] Run 'roost init' to create a vault")
            raise VaultNotFoundError(self.storage.data_dir)
        master_pwd = prompt("Master password: ", is_password=True)
        self.storage.unlock_vault(master_pwd)

    def _ask_new_master_password(self) -> str:
        while True:
            master_pwd = prompt(
                f"New master password (minimum {config.MIN_MASTER_PASSWORD_LENGTH} characters): ",
                is_password=True
            )
            is_valid, message = validation.validate_master_password(master_pwd)
            if not is_valid:
                print(f"[-] {message}")
                continue

            confirm_pwd = prompt("Confirm master password: ", is_password=True)
            if master_pwd != confirm_pwd:
                print("[-] Passwords do not match")
                continue
            return master_pwd

    def _ask_account_password(self, generate: bool) -> str:
        if generate:
            password = password_generator.generate_password()
            print("[+] Generated a random password")
            return password

        while True:
            password = prompt("Account password: ", is_password=True)
            if not password:
                print("[-] Password cannot be empty")
                continue
            if prompt("Confirm password: ", is_password=True) != password:
                print("[-] Passwords do not match")
                continue
            ui.display_password_strength(password_generator.estimate_password_strength(password))
            return password

    @staticmethod
    def _collect_fields(args) -> Dict[str, str]:
        return {name: getattr(args, name) for name in FIELD_OPTIONS if getattr(args, name) is not None}

    def _copy_password(self, password: str) -> None:
        timeout = config.CLIPBOARD_CLEAR_SECONDS
        if copy_to_clipboard(password, timeout):
            if timeout:
                print(f"[+] Password copied to clipboard ({timeout} second retention)")
            else:
                print("[+] Password copied to clipboard")
        else:
            print("[-] Failed to copy to clipboard")

    # ==========================================================================
    # VAULT COMMANDS
    # ==========================================================================

    def init(self, args) -> int:
        if self.storage.vault_exists():
            print(f"[-] A vault already exists in {self.storage.data_dir}")
            print("[i] Use 'import' to replace it, or choose another --data-dir")
            return 1

        master_pwd = self._ask_new_master_password()
        print("[+] Deriving encryption key...")
        self.storage.create_vault(master_pwd)
        print(f"[+] Roost vault created: {self.storage.vault_path}")
        return 0

    def change_master(self, args) -> int:
        self._unlock()
        current_pwd = prompt("Confirm current master password: ", is_password=True)
        new_pwd = self._ask_new_master_password()
        print("[+] Re-encrypting vault...")
        self.storage.change_master_password(new_pwd, current_password=current_pwd)
        print("[+] Master password changed")
        return 0

    def export(self, args) -> int:
        self.storage.export_vault(args.path)
        print(f"[+] Encrypted vault exported to {args.path}")
        print("[i] The export opens with the current master password")
        return 0

    def import_(self, args) -> int:
        if self.storage.vault_exists() and not args.yes:
            print("[!] The current vault will be replaced (a .bak copy is kept)")
            if not ui.confirm("Continue?"):
                print("[i] Import cancelled")
                return 1
        self.storage.import_vault(args.path)
        print(f"[+] Vault imported from {args.path}")
        print("[i] Unlock it with the master password it was exported under")
        return 0

    def export_csv(self, args) -> int:
        print("[!] WARNING: the CSV file will contain every password in plaintext")
        if not args.yes and not ui.confirm("Export anyway?"):
            print("[i] Export cancelled")
            return 1

        self._unlock()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InsecureExportWarning)
            self.storage.export_to_csv(args.path)
        print(f"[+] Accounts exported to {args.path}")
        print("[!] Delete this file as soon as you no longer need it")
        return 0

    # ==========================================================================
    # ACCOUNT COMMANDS
    # ==========================================================================

    def add(self, args) -> int:
        self._unlock()
        fields = self._collect_fields(args)
        while not fields.get('platform', '').strip():
            fields['platform'] = prompt("Platform: ")
        password = self._ask_account_password(args.generate)

        account = self.storage.add_account(fields, password)
        print(f"[+] Account added with ID {account.id}")
        if args.copy:
            self._copy_password(password)
        return 0

    def list_accounts(self, args) -> int:
        self._unlock()
        if args.group is not None:
            accounts = self.storage.list_accounts_in_group(args.group)
        else:
            accounts = sorted(self.storage.list_accounts(), key=lambda account: account.sort_order)
        ui.display_accounts_table(accounts)
        return 0

    def get(self, args) -> int:
        self._unlock()
        ui.display_account(self.storage.get_account(args.id))
        return 0

    def show(self, args) -> int:
        self._unlock()
        account = self.storage.get_account(args.id)
        password = self.storage.decrypt_secret(args.id)
        if args.copy:
            ui.display_account(account)
            self._copy_password(password)
        else:
            ui.display_account(account, password=password)
        return 0

    def update(self, args) -> int:
        self._unlock()
        fields = self._collect_fields(args)
        password = None
        if args.generate or args.change_password:
            password = self._ask_account_password(args.generate)

        if not fields and password is None:
            print("[-] Nothing to update")
            return 1

        account = self.storage.update_account(args.id, fields, password)
        print(f"[+] Account {account.id} updated")
        if password is not None and args.copy:
            self._copy_password(password)
        return 0

    def delete(self, args) -> int:
        self._unlock()
        account = self.storage.get_account(args.id)
        if not args.yes and not ui.confirm(f"Delete '{account.platform}' ({account.id})?"):
            print("[i] Deletion cancelled")
            return 1
        self.storage.delete_account(args.id)
        print(f"[+] Account {args.id} deleted")
        return 0

    def search(self, args) -> int:
        self._unlock()
        if args.group is not None:
            results = self.storage.search_accounts_in_group(args.query, args.group)
        else:
            results = self.storage.search_accounts(args.query)
        ui.display_accounts_table(results)
        return 0

    def groups(self, args) -> int:
        self._unlock()
        ui.display_groups(self.storage.list_groups())
        return 0

    def reorder(self, args) -> int:
        self._unlock()
        self.storage.reorder_accounts(args.ids, group=args.group)
        print(f"[+] Reordered {len(args.ids)} account(s)")
        return 0

    # ==========================================================================
    # GENERATOR
    # ==========================================================================

    @staticmethod
    def generate(args) -> int:
        options = password_generator.GeneratorOptions(
            length=args.length,
            use_lowercase=not args.no_lowercase,
            use_uppercase=not args.no_uppercase,
            use_digits=not args.no_digits,
            use_symbols=not args.no_symbols,
            exclude_similar=args.exclude_similar,
            exclude_ambiguous=args.exclude_ambiguous,
        )
        password = password_generator.generate_password(options)

        shown = password if args.reveal else mask_password(password)
        print(f"Generated password: {shown}")
        strength = password_generator.estimate_password_strength(password)
        print(f"Security rating: {strength['strength']}")

        if not args.no_copy:
            if copy_to_clipboard(password, config.CLIPBOARD_CLEAR_SECONDS):
                print(f"[+] Password copied to clipboard ({config.CLIPBOARD_CLEAR_SECONDS} second retention)")
            elif not args.reveal:
                print("[-] Clipboard unavailable; rerun with --reveal to see the password")
        return 0

    def cleanup(self) -> None:
        """Wipe key material before exit."""
        self.storage.close()


# ==============================================================================
# ARGUMENT PARSER
# ==============================================================================

def _add_field_options(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument('--platform', help='Service or site name')
    subparser.add_argument('--username', help='Login name')
    subparser.add_argument('--email', help='Email address')
    subparser.add_argument('--url', help='Login URL')
    subparser.add_argument('--notes', help='Free-form notes')
    subparser.add_argument('--group', help='Group name (empty for none)')
    subparser.add_argument('--generate', action='store_true',
                           help='Use a generated random password')
    subparser.add_argument('--copy', action='store_true',
                           help='Copy the password to the clipboard afterwards')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='roost',
        description="Roost keeps account credentials in a single local file encrypted "
                    "under one master password.",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--data-dir', default=None,
                        help='Vault directory (default: $ROOST_DATA_DIR or ~/.roost)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available operations')

    subparsers.add_parser('init', help='Create a new encrypted vault')

    add_parser = subparsers.add_parser('add', help='Add an account')
    _add_field_options(add_parser)

    list_parser = subparsers.add_parser('list', help='List accounts')
    list_parser.add_argument('--group', help='Only accounts in this group ("" for ungrouped)')

    get_parser = subparsers.add_parser('get', help='Show account details without the password')
    get_parser.add_argument('id', help='Account ID')

    show_parser = subparsers.add_parser('show', help='Show account details with the password')
    show_parser.add_argument('id', help='Account ID')
    show_parser.add_argument('--copy', action='store_true',
                             help='Copy the password to the clipboard instead of printing it')

    update_parser = subparsers.add_parser('update', help='Update an account')
    update_parser.add_argument('id', help='Account ID')
    _add_field_options(update_parser)
    update_parser.add_argument('--change-password', action='store_true',
                               help='Prompt for a new account password')

    delete_parser = subparsers.add_parser('delete', help='Delete an account')
    delete_parser.add_argument('id', help='Account ID')
    delete_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')

    search_parser = subparsers.add_parser('search', help='Search accounts')
    search_parser.add_argument('query', help='Case-insensitive text to look for')
    search_parser.add_argument('--group', help='Restrict the search to one group')

    subparsers.add_parser('groups', help='List group names')

    reorder_parser = subparsers.add_parser('reorder', help='Set the display order of accounts')
    reorder_parser.add_argument('ids', nargs='+', help='Account IDs in the desired order')
    reorder_parser.add_argument('--group', help='Reorder within this group only')

    gen_parser = subparsers.add_parser('generate', help='Generate a secure password')
    gen_parser.add_argument('--length', type=int, default=password_generator.DEFAULT_LENGTH,
                            help=f'Password length (default: {password_generator.DEFAULT_LENGTH})')
    gen_parser.add_argument('--no-lowercase', action='store_true', help='Leave out a-z')
    gen_parser.add_argument('--no-uppercase', action='store_true', help='Leave out A-Z')
    gen_parser.add_argument('--no-digits', action='store_true', help='Leave out 0-9')
    gen_parser.add_argument('--no-symbols', action='store_true', help='Leave out symbols')
    gen_parser.add_argument('--exclude-similar', action='store_true',
                            help=f'Leave out look-alike characters ({password_generator.SIMILAR_CHARS})')
    gen_parser.add_argument('--exclude-ambiguous', action='store_true',
                            help='Leave out brackets and slashes')
    gen_parser.add_argument('--reveal', action='store_true',
                            help='Show the full generated password (default: partially masked)')
    gen_parser.add_argument('--no-copy', action='store_true', help='Do not copy to the clipboard')

    subparsers.add_parser('change-master', help='Rotate the master password')

    export_parser = subparsers.add_parser('export', help='Copy the encrypted vault file')
    export_parser.add_argument('path', help='Destination file')

    import_parser = subparsers.add_parser('import', help='Replace the vault with an exported file')
    import_parser.add_argument('path', help='Exported vault file')
    import_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')

    csv_parser = subparsers.add_parser('export-csv', help='Export accounts as PLAINTEXT CSV')
    csv_parser.add_argument('path', help='Destination CSV file')
    csv_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')

    return parser


COMMANDS = {
    'init': Roost.init,
    'add': Roost.add,
    'list': Roost.list_accounts,
    'get': Roost.get,
    'show': Roost.show,
    'update': Roost.update,
    'delete': Roost.delete,
    'search': Roost.search,
    'groups': Roost.groups,
    'reorder': Roost.reorder,
    'change-master': Roost.change_master,
    'export': Roost.export,
    'import': Roost.import_,
    'export-csv': Roost.export_csv,
}

# ==============================================================================
# MAIN ENTRY POINT
# ==============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Roost Password Manager."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'generate':
        try:
            return Roost.generate(args)
        except password_generator.PasswordGenerationError as e:
            print(f"[-] {e}")
            return 1
        finally:
            wait_for_clipboard_clear()

    try:
        roost = Roost(args.data_dir or config.get_data_dir())
    except VaultError as e:
        print(f"[-] {e}")
        return 1

    try:
        return COMMANDS[args.command](roost, args)
    except VaultError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"[-] {e}")
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\n[-] Operation terminated and vault locked.")
        return 1
    finally:
        roost.cleanup()
        wait_for_clipboard_clear()


if __name__ == "__main__":
    sys.exit(main())
