"""
Shared pytest fixtures for the Roost test suite.

Autouse fixtures below keep tests fast and isolated:
  - PBKDF2 rounds   -> lowered     (key stretching is the slowest step)
  - System clipboard -> in-memory  (tests never touch the real clipboard)
"""

import pytest
import pyperclip

import roostlib.clipboard as clipboard_mod
import roostlib.crypto as crypto_mod
from roostlib.storage import VaultStorage

MASTER_PASSWORD = "correct horse battery"


class FakeClipboard:
    """In-memory stand-in for the pyperclip backend."""

    def __init__(self):
        self.content = ""
        self.copies = []
        self.fail = False

    def copy(self, text):
        if self.fail:
            raise pyperclip.PyperclipException("no clipboard mechanism")
        self.content = text
        self.copies.append(text)

    def paste(self):
        if self.fail:
            raise pyperclip.PyperclipException("no clipboard mechanism")
        return self.content


@pytest.fixture(autouse=True)
def _fast_kdf(monkeypatch):
    """Lower PBKDF2 rounds for every test.

    Derivation still runs the real PBKDF2 + HKDF chain, just with fewer
    iterations, so every file the tests write is a genuine vault.
    """
    monkeypatch.setattr(crypto_mod, "PBKDF2_ITERATIONS", 1000)


@pytest.fixture(autouse=True)
def fake_clipboard(monkeypatch):
    clipboard = FakeClipboard()
    monkeypatch.setattr(pyperclip, "copy", clipboard.copy)
    monkeypatch.setattr(pyperclip, "paste", clipboard.paste)
    return clipboard


@pytest.fixture
def vault_dir(tmp_path):
    return tmp_path / "vault"


@pytest.fixture
def storage(vault_dir):
    """A freshly created, unlocked vault."""
    store = VaultStorage(str(vault_dir))
    store.create_vault(MASTER_PASSWORD)
    yield store
    store.close()


@pytest.fixture
def populated(storage):
    """Unlocked vault holding three accounts across two groups."""
    storage.add_account(
        {"platform": "GitHub", "username": "octocat", "email": "octo@proton.me",
         "url": "https://github.com/login", "group": "Work"},
        "gh-secret-1",
    )
    storage.add_account(
        {"platform": "Gmail", "username": "alice", "email": "alice@proton.me",
         "notes": "recovery phone on file", "group": "Personal"},
        "mail-secret-2",
    )
    storage.add_account(
        {"platform": "GitLab", "username": "octo-lab", "group": "Work"},
        "gl-secret-3",
    )
    return storage


@pytest.fixture(autouse=True)
def _reset_shared_clipboard(monkeypatch):
    """Give each test its own shared clipboard manager and drop its timers."""
    monkeypatch.setattr(clipboard_mod, "_default_manager", None)
    yield
    if clipboard_mod._default_manager is not None:
        clipboard_mod._default_manager.cancel_pending()
