"""Tests for the roost command line, with scripted prompt answers."""

import pytest

import roost
import roostlib.clipboard as clipboard_mod
import roostlib.config as config_mod
import roostlib.ui as ui_mod
from roostlib.storage import VaultStorage

MASTER = "cli master password"


@pytest.fixture(autouse=True)
def _no_clipboard_wait(monkeypatch):
    """Copies stay on the fake clipboard unless a test asks for a retention."""
    monkeypatch.setattr(config_mod, "CLIPBOARD_CLEAR_SECONDS", 0)


@pytest.fixture
def answers(monkeypatch):
    """Queue of replies returned by every prompt_toolkit prompt in turn."""
    queue = []

    def fake_prompt(message="", **kwargs):
        if not queue:
            raise AssertionError(f"unexpected prompt: {message}")
        return queue.pop(0)

    monkeypatch.setattr(roost, "prompt", fake_prompt)
    monkeypatch.setattr(ui_mod, "prompt", fake_prompt)
    return queue


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "cli-vault")


def run(data_dir, *argv):
    return roost.main(["--data-dir", data_dir, *argv])


@pytest.fixture
def initialized(data_dir, answers):
    answers.extend([MASTER, MASTER])
    assert run(data_dir, "init") == 0
    return data_dir


def stored_accounts(data_dir):
    store = VaultStorage(data_dir)
    store.unlock_vault(MASTER)
    return store.list_accounts()


class TestVaultCommands:

    def test_init_retries_short_password(self, data_dir, answers, capsys):
        answers.extend(["short", MASTER, MASTER])
        assert run(data_dir, "init") == 0
        assert "Minimum 8 characters" in capsys.readouterr().out
        assert stored_accounts(data_dir) == []

    def test_init_twice(self, initialized, capsys):
        assert run(initialized, "init") == 1
        assert "already exists" in capsys.readouterr().out

    def test_command_without_vault(self, data_dir, answers, capsys):
        assert run(data_dir, "list") == 1
        assert "[-] vault does not exist" in capsys.readouterr().out

    def test_wrong_master_password(self, initialized, answers, capsys):
        answers.append("wrong password")
        assert run(initialized, "list") == 1
        assert "[-] invalid master password" in capsys.readouterr().out

    def test_change_master(self, initialized, answers):
        answers.extend([MASTER, MASTER, "rotated master pw", "rotated master pw"])
        assert run(initialized, "change-master") == 0

        store = VaultStorage(initialized)
        store.unlock_vault("rotated master pw")


class TestAccountCommands:

    def test_add_and_show(self, initialized, answers, capsys):
        answers.extend([MASTER, "typed-secret", "typed-secret"])
        assert run(initialized, "add", "--platform", "GitHub", "--username", "octocat") == 0

        [account] = stored_accounts(initialized)
        assert account.platform == "GitHub"

        capsys.readouterr()
        answers.append(MASTER)
        assert run(initialized, "show", account.id) == 0
        out = capsys.readouterr().out
        assert "typed-secret" in out
        assert "octocat" in out

    def test_get_masks_password(self, initialized, answers, capsys):
        answers.extend([MASTER, "typed-secret", "typed-secret"])
        run(initialized, "add", "--platform", "GitHub")
        [account] = stored_accounts(initialized)

        capsys.readouterr()
        answers.append(MASTER)
        assert run(initialized, "get", account.id) == 0
        out = capsys.readouterr().out
        assert "typed-secret" not in out
        assert "********" in out

    def test_add_generated_and_copy(self, initialized, answers, fake_clipboard):
        answers.append(MASTER)
        assert run(initialized, "add", "--platform", "Mail", "--generate", "--copy") == 0
        assert len(fake_clipboard.content) == 16

    def test_update_and_delete(self, initialized, answers):
        answers.extend([MASTER, "pw-one", "pw-one"])
        run(initialized, "add", "--platform", "Old")
        [account] = stored_accounts(initialized)

        answers.append(MASTER)
        assert run(initialized, "update", account.id, "--platform", "New", "--group", "Work") == 0
        [updated] = stored_accounts(initialized)
        assert (updated.platform, updated.group) == ("New", "Work")

        answers.append(MASTER)
        assert run(initialized, "delete", account.id, "--yes") == 0
        assert stored_accounts(initialized) == []

    def test_delete_declined(self, initialized, answers):
        answers.extend([MASTER, "pw-one", "pw-one"])
        run(initialized, "add", "--platform", "Keep")
        [account] = stored_accounts(initialized)

        answers.extend([MASTER, "n"])
        assert run(initialized, "delete", account.id) == 1
        assert len(stored_accounts(initialized)) == 1

    def test_missing_account(self, initialized, answers, capsys):
        answers.append(MASTER)
        assert run(initialized, "show", "0000000000000000") == 1
        assert "not found" in capsys.readouterr().out

    def test_search_and_groups(self, initialized, answers, capsys):
        answers.extend([MASTER, "a", "a"])
        run(initialized, "add", "--platform", "GitHub", "--group", "Work")
        answers.extend([MASTER, "b", "b"])
        run(initialized, "add", "--platform", "Bank", "--group", "Money")

        capsys.readouterr()
        answers.append(MASTER)
        assert run(initialized, "search", "git") == 0
        out = capsys.readouterr().out
        assert "GitHub" in out and "Bank" not in out

        answers.append(MASTER)
        assert run(initialized, "groups") == 0
        out = capsys.readouterr().out
        assert "Money" in out and "Work" in out

    def test_export_csv(self, initialized, answers, tmp_path):
        answers.extend([MASTER, "csv-secret", "csv-secret"])
        run(initialized, "add", "--platform", "GitHub")

        target = tmp_path / "out.csv"
        answers.append(MASTER)
        assert run(initialized, "export-csv", str(target), "--yes") == 0
        assert "csv-secret" in target.read_text(encoding="utf-8-sig")


class TestGenerateCommand:

    def test_reveal(self, capsys):
        assert roost.main(["generate", "--length", "20", "--reveal", "--no-copy"]) == 0
        line = next(l for l in capsys.readouterr().out.splitlines() if l.startswith("Generated"))
        assert len(line.split(": ", 1)[1]) == 20

    def test_masked_and_copied(self, capsys, fake_clipboard):
        assert roost.main(["generate"]) == 0
        out = capsys.readouterr().out
        assert fake_clipboard.content not in out
        assert len(fake_clipboard.content) == 16

    def test_invalid_length(self, capsys):
        assert roost.main(["generate", "--length", "0"]) == 1
        assert "password length must be positive" in capsys.readouterr().out

    def test_mask_password(self):
        assert roost.mask_password("abcdefghij") == "abc****hij"
        assert roost.mask_password("abc") == "***"


class TestClipboardRetention:

    def test_generate_waits_for_clear(self, monkeypatch, capsys, fake_clipboard):
        monkeypatch.setattr(config_mod, "CLIPBOARD_CLEAR_SECONDS", 0.2)
        assert roost.main(["generate", "--length", "20"]) == 0
        assert len(fake_clipboard.copies[-1]) == 20
        assert fake_clipboard.content == ""
        out = capsys.readouterr().out
        assert "Clearing clipboard in 0.2s" in out
        assert "[+] Clipboard cleared" in out

    def test_show_copy_waits_for_clear(self, initialized, answers, monkeypatch, fake_clipboard):
        answers.extend([MASTER, "typed-secret", "typed-secret"])
        run(initialized, "add", "--platform", "GitHub")
        [account] = stored_accounts(initialized)

        monkeypatch.setattr(config_mod, "CLIPBOARD_CLEAR_SECONDS", 0.2)
        answers.append(MASTER)
        assert run(initialized, "show", account.id, "--copy") == 0
        assert fake_clipboard.copies[-1] == "typed-secret"
        assert fake_clipboard.content == ""

    def test_interrupt_clears_immediately(self, monkeypatch, fake_clipboard):
        monkeypatch.setattr(config_mod, "CLIPBOARD_CLEAR_SECONDS", 60)

        def interrupted(self, timeout=None):
            raise KeyboardInterrupt

        monkeypatch.setattr(clipboard_mod.ClipboardManager, "wait_pending", interrupted)
        assert roost.main(["generate"]) == 0
        assert fake_clipboard.copies
        assert fake_clipboard.content == ""
        assert not clipboard_mod.get_clipboard_manager().has_pending_clear

    def test_no_wait_without_copy(self, monkeypatch, capsys):
        monkeypatch.setattr(config_mod, "CLIPBOARD_CLEAR_SECONDS", 60)
        assert roost.main(["generate", "--no-copy", "--reveal"]) == 0
        assert "Clearing clipboard" not in capsys.readouterr().out
