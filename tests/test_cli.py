"""Tests for the bankrec command line."""

import csv
import io
import json

import pytest

from bankrec.cli.main import cli

from conftest import USER

FEBRUARY = ["--start-date", "2025-02-01", "--end-date", "2025-02-28"]


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database as USER."""

    def invoke(*args, user=USER):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--user", user, *args])

    return invoke


@pytest.fixture
def kbiz_file(fixtures_dir):
    return str(fixtures_dir / "kbiz_statement.csv")


def _batch_id(output):
    for line in output.splitlines():
        if "Batch:" in line:
            return line.split("Batch:")[1].split()[0]
    return None


class TestAccountCommands:
    def test_create_and_list(self, run):
        result = run("account", "create", "KBANK", "123-4-56789-0")

        assert result.exit_code == 0
        assert "Created account 'KBANK 123-4-56789-0' (ID: 1)" in result.output

        result = run("account", "list")
        assert result.exit_code == 0
        assert "123-4-56789-0" in result.output
        assert "current" in result.output

    def test_list_is_per_user(self, run):
        run("account", "create", "KBANK", "123-4-56789-0")

        result = run("account", "list", user="bob")

        assert "No accounts found." in result.output

    def test_duplicate_account(self, run):
        run("account", "create", "KBANK", "123-4-56789-0")

        result = run("account", "create", "KBANK", "123-4-56789-0")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_deactivate_by_number(self, run):
        run("account", "create", "SCB", "987-6-54321-0", "--type", "savings")

        result = run("account", "deactivate", "987-6-54321-0")

        assert result.exit_code == 0
        assert "Deactivated account" in result.output
        assert "No accounts found." in run("account", "list").output
        assert "(inactive)" in run("account", "list", "--all").output

    def test_unknown_account(self, run):
        result = run("account", "deactivate", "42")

        assert result.exit_code == 1
        assert "Bank account 42 not found" in result.output


class TestImportCommands:
    def test_import_statement(self, run, sample_account, kbiz_file):
        result = run("import", kbiz_file, "--account", str(sample_account.id))

        assert result.exit_code == 0
        assert "Successfully imported 4 transactions" in result.output
        assert "Inserted: 4" in result.output
        assert "(completed)" in result.output

    def test_import_by_account_number(self, run, sample_account, fixtures_dir):
        result = run("import", str(fixtures_dir / "kplus_statement.csv"), "--account", "123-4-56789-0")

        assert result.exit_code == 0
        assert "Inserted: 3" in result.output

    def test_same_file_twice(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", str(sample_account.id))

        result = run("import", kbiz_file, "--account", str(sample_account.id))

        assert result.exit_code == 1
        assert "already imported" in result.output

    def test_replace_range(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", str(sample_account.id))

        result = run("import", kbiz_file, "--account", str(sample_account.id), "--mode", "replace_range")

        assert result.exit_code == 0
        assert "Deleted before import: 4" in result.output

    def test_other_users_account(self, run, other_account, kbiz_file):
        result = run("import", kbiz_file, "--account", str(other_account.id))

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_layout_suggests_mapping(self, run, sample_account, tmp_path):
        statement = tmp_path / "odd.csv"
        statement.write_text("Posted,Memo,Out,In\n2025-02-01,Coffee,50.00,\n", encoding="utf-8")

        result = run("import", str(statement), "--account", str(sample_account.id))

        assert result.exit_code == 1
        assert "Cannot auto-detect statement format" in result.output
        assert "--mapping" in result.output

    def test_import_with_mapping(self, run, sample_account, tmp_path):
        statement = tmp_path / "odd.csv"
        statement.write_text("Exported 2025\nPosted,Memo,Out,In\n2025-02-01,Coffee,50.00,\n", encoding="utf-8")
        mapping = json.dumps({"txn_date": "Posted", "description": "Memo", "withdrawal": "Out", "deposit": "In"})

        result = run(
            "import",
            str(statement),
            "--account",
            str(sample_account.id),
            "--mapping",
            mapping,
            "--header-row",
            "2",
        )

        assert result.exit_code == 0
        assert "Inserted: 1" in result.output

    def test_mapping_from_file(self, run, sample_account, tmp_path):
        statement = tmp_path / "odd.csv"
        statement.write_text("Posted,Memo,Out,In\n2025-02-01,Coffee,50.00,\n", encoding="utf-8")
        mapping_file = tmp_path / "mapping.json"
        mapping_file.write_text(json.dumps({"txn_date": "Posted", "withdrawal": "Out"}), encoding="utf-8")

        result = run("import", str(statement), "--account", str(sample_account.id), "--mapping", f"@{mapping_file}")

        assert result.exit_code == 0

    def test_invalid_mapping(self, run, sample_account, kbiz_file):
        result = run("import", kbiz_file, "--account", str(sample_account.id), "--mapping", "{not json")

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_header_row_without_mapping(self, run, sample_account, kbiz_file):
        result = run("import", kbiz_file, "--account", str(sample_account.id), "--header-row", "4")

        assert result.exit_code == 1
        assert "--header-row can only be used with --mapping" in result.output

    def test_preview(self, run, sample_account, kbiz_file, temp_db):
        result = run("preview", kbiz_file, "--account", str(sample_account.id))

        assert result.exit_code == 0
        assert "kbiz layout" in result.output
        assert "Date range: 2025-02-01 to 2025-02-05" in result.output
        assert "Transactions: 4" in result.output
        assert "Total deposits: 1,800.00" in result.output
        assert "Coffee shop" in result.output
        assert temp_db.count_transactions(sample_account.id) == 0

    def test_preview_overlap(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", str(sample_account.id))

        result = run("preview", kbiz_file, "--account", str(sample_account.id), "--overlap")

        assert result.exit_code == 0
        assert "4 stored transactions already fall between 2025-02-01 and 2025-02-05" in result.output
        assert "--mode replace_range" in result.output


class TestBatchCommands:
    def test_history_rollback_and_reimport(self, run, sample_account, kbiz_file):
        batch_id = _batch_id(run("import", kbiz_file, "--account", str(sample_account.id)).output)

        history = run("batch", "history", "--account", str(sample_account.id))
        assert history.exit_code == 0
        assert "kbiz_statement.csv" in history.output
        assert "covers 2025-02-01 to 2025-02-05" in history.output

        result = run("batch", "rollback", batch_id)
        assert result.exit_code == 0
        assert f"Rolled back batch {batch_id}: deleted 4 transactions." in result.output

        again = run("batch", "rollback", batch_id)
        assert again.exit_code == 0
        assert "rolled_back; no transactions deleted" in again.output

        assert run("import", kbiz_file, "--account", str(sample_account.id)).exit_code == 0

    def test_rollback_missing_batch(self, run):
        result = run("batch", "rollback", "99")

        assert result.exit_code == 1
        assert "Import batch 99 not found" in result.output

    def test_empty_history(self, run, sample_account):
        result = run("batch", "history", "--account", str(sample_account.id))

        assert "No imports found." in result.output

    def test_repair_nothing_pending(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", str(sample_account.id))

        result = run("batch", "repair", "--account", str(sample_account.id))

        assert result.exit_code == 0
        assert "No pending batches." in result.output


class TestBalanceCommands:
    def test_opening_balance(self, run, sample_account):
        assert "No opening balance set" in run("balance", "opening", "--account", "1").output

        result = run("balance", "opening", "--account", "1", "--amount", "1,000", "--as-of", "2025-01-31")

        assert result.exit_code == 0
        assert "1,000.00 THB as of 2025-01-31" in result.output
        assert "1,000.00 THB (as of 2025-01-31)" in run("balance", "opening", "--account", "1").output

    def test_as_of_without_amount(self, run, sample_account):
        result = run("balance", "opening", "--account", "1", "--as-of", "2025-01-31")

        assert result.exit_code == 1

    def test_invalid_amount(self, run, sample_account):
        result = run("balance", "reported", "--account", "1", "--amount", "lots")

        assert result.exit_code == 1
        assert "Invalid amount format" in result.output

    def test_reported_balances(self, run, sample_account):
        result = run("balance", "reported", "--account", "1", "--amount", "1500", "--as-of", "2025-02-05")
        assert result.exit_code == 0
        assert "Recorded reported balance 1,500.00 THB as of 2025-02-05" in result.output

        listing = run("balance", "reported", "--account", "1")
        assert "2025-02-05" in listing.output
        assert "1,500.00" in listing.output

    def test_summary_matches(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", "1")
        run("balance", "reported", "--account", "1", "--amount", "1500", "--as-of", "2025-02-05")

        result = run("balance", "summary", "--account", "1", *FEBRUARY)

        assert result.exit_code == 0
        assert "1,500.00" in result.output
        assert "Balances match." in result.output

    def test_summary_mismatch(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", "1")
        run("balance", "opening", "--account", "1", "--amount", "100", "--as-of", "2025-01-31")
        run("balance", "reported", "--account", "1", "--amount", "1500", "--as-of", "2025-02-05")

        result = run("balance", "summary", "--account", "1", *FEBRUARY)

        assert result.exit_code == 0
        assert "-100.00" in result.output
        assert "MISMATCH" in result.output

    def test_summary_rejects_reversed_range(self, run, sample_account):
        result = run(
            "balance", "summary", "--account", "1", "--start-date", "2025-03-01", "--end-date", "2025-02-01"
        )

        assert result.exit_code == 1
        assert "after end date" in result.output


class TestCashCommands:
    def test_account_position(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", "1")

        result = run("cash", "position", "--account", "1", "--daily", *FEBRUARY)

        assert result.exit_code == 0
        assert "Ending balance" in result.output
        assert "1,500.00" in result.output
        assert "2025-02-02" in result.output

    def test_company_position(self, run, sample_account, kbiz_file, fixtures_dir):
        run("account", "create", "SCB", "987-6-54321-0")
        run("import", kbiz_file, "--account", "1")
        run("import", str(fixtures_dir / "kplus_statement.csv"), "--account", "987-6-54321-0")

        result = run("cash", "company", *FEBRUARY)

        assert result.exit_code == 0
        assert "All active accounts" in result.output
        # 1500 from the K-BIZ file plus 380 from the K PLUS file
        assert "1,880.00" in result.output

    def test_two_periods(self, run, sample_account):
        result = run("cash", "position", "--account", "1", "--this-month", "--last-month")

        assert result.exit_code == 1
        assert "Only one period option" in result.output


class TestExportCommand:
    def test_export_to_stdout(self, run, sample_account, kbiz_file):
        run("import", kbiz_file, "--account", "1")

        result = run("export", "--account", "1", "-o", "-", *FEBRUARY)

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "# Opening Balance: 0.00 THB (default)"
        rows = list(csv.reader(io.StringIO("\n".join(lines[1:]))))
        assert rows[0][0] == "Date"
        assert len(rows) == 5
        assert rows[-1][5] == "1500.00"

    def test_export_to_directory(self, run, sample_account, kbiz_file, tmp_path):
        run("import", kbiz_file, "--account", "1")

        result = run("export", "--account", "1", "-o", str(tmp_path), *FEBRUARY)

        assert result.exit_code == 0
        assert "Exported 4 transactions" in result.output
        files = list(tmp_path.glob("bank-kbank-123-4-56789-0-*.csv"))
        assert len(files) == 1

    def test_export_empty_range(self, run, sample_account):
        result = run("export", "--account", "1", "-o", "-", *FEBRUARY)

        assert result.exit_code == 1
