"""Tests for the statement, inbox, validation and loan commands."""

import json
import shutil

import pytest

from finca.cli.main import cli


def run(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


class TestImportCommand:
    """finca import."""

    def test_import(self, cli_runner, temp_db, sample_account, fixtures_dir):
        result = run(
            cli_runner, temp_db, "import", str(fixtures_dir / "santander_statement.csv"), "--account", "Cuenta Test"
        )

        assert result.exit_code == 0
        assert "Import complete" in result.output
        assert "Bank: Banco Santander" in result.output
        assert "Imported: 5 movements" in result.output
        assert "Skipped: 1 duplicates" in result.output
        assert "(duplicate in file)" in result.output

    def test_preview(self, cli_runner, temp_db, fixtures_dir):
        result = run(cli_runner, temp_db, "import", str(fixtures_dir / "santander_statement.csv"), "--preview")

        assert result.exit_code == 0
        assert "Header row: 6 (source: synonyms)" in result.output
        assert "[duplicate]" in result.output
        assert "6 movements: 4 unique, 1 duplicates in 1 group(s)" in result.output
        assert temp_db.list_movements() == []

    def test_account_required(self, cli_runner, temp_db, fixtures_dir):
        result = run(cli_runner, temp_db, "import", str(fixtures_dir / "santander_statement.csv"))
        assert result.exit_code == 1
        assert "--account is required" in result.output

    def test_unknown_account(self, cli_runner, temp_db, fixtures_dir):
        result = run(
            cli_runner, temp_db, "import", str(fixtures_dir / "santander_statement.csv"), "--account", "Nada"
        )
        assert result.exit_code == 1

    def test_unknown_layout_then_mapping(self, cli_runner, temp_db, sample_account, fixtures_dir):
        path = str(fixtures_dir / "unknown_layout.csv")
        result = run(cli_runner, temp_db, "import", path, "--account", "Cuenta Test")
        assert result.exit_code == 1
        assert "Could not recognise the statement columns." in result.output
        assert "Data, Descripció, Quantitat" in result.output

        result = run(
            cli_runner,
            temp_db,
            "import",
            path,
            "--account",
            "Cuenta Test",
            "--map",
            "date=Data",
            "--map",
            "description=Descripció",
            "--map",
            "amount=Quantitat",
        )
        assert result.exit_code == 0
        assert "Imported: 3 movements" in result.output

        result = run(cli_runner, temp_db, "profile", "list")
        assert result.exit_code == 0
        assert "Used: 0" in result.output

    def test_bad_mapping_syntax(self, cli_runner, temp_db, sample_account, fixtures_dir):
        result = run(
            cli_runner,
            temp_db,
            "import",
            str(fixtures_dir / "unknown_layout.csv"),
            "--account",
            "Cuenta Test",
            "--map",
            "date",
        )
        assert result.exit_code == 1
        assert "--map expects KEY=VALUE" in result.output

    def test_header_row_option(self, cli_runner, temp_db, sample_account, fixtures_dir):
        result = run(
            cli_runner,
            temp_db,
            "import",
            str(fixtures_dir / "santander_statement.csv"),
            "--account",
            "Cuenta Test",
            "--header-row",
            "6",
        )
        assert result.exit_code == 0
        assert "Imported: 5 movements" in result.output


class TestMovementsCommand:
    """finca movements list."""

    def test_list_after_import(self, cli_runner, temp_db, sample_account, fixtures_dir):
        run(cli_runner, temp_db, "import", str(fixtures_dir / "santander_statement.csv"), "--account", "Cuenta Test")

        result = run(cli_runner, temp_db, "movements", "list", "--account", "Cuenta Test")
        assert result.exit_code == 0
        assert "Found 5 movement(s):" in result.output
        assert "Total: 2322.55" in result.output

        result = run(cli_runner, temp_db, "movements", "list", "--start-date", "06/01/2024")
        assert "Found 3 movement(s):" in result.output

    def test_list_empty(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "movements", "list")
        assert result.exit_code == 0
        assert "No movements found." in result.output

    def test_bad_date(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "movements", "list", "--start-date", "ayer")
        assert result.exit_code == 1
        assert "Invalid start date" in result.output


class TestProfileCommands:
    """finca profile ..."""

    def test_show_and_delete(self, cli_runner, temp_db, profile_service):
        profile_id = profile_service.create_profile("abc123def", {"date": "Data", "amount": "Quantitat"}, name="Caixa")

        result = run(cli_runner, temp_db, "profile", "show", str(profile_id))
        assert result.exit_code == 0
        assert "Profile: Caixa" in result.output
        assert "Quantitat" in result.output

        result = run(cli_runner, temp_db, "profile", "delete", str(profile_id))
        assert result.exit_code == 0
        assert f"Deleted bank profile {profile_id}" in result.output

        result = run(cli_runner, temp_db, "profile", "delete", str(profile_id))
        assert result.exit_code == 1

    def test_list_empty(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "profile", "list")
        assert "No bank profiles found." in result.output


class TestInboxCommands:
    """finca inbox ..."""

    def test_invoice_flow(self, cli_runner, temp_db, tmp_path, fixtures_dir):
        invoice = tmp_path / "factura_luz.pdf"
        invoice.write_bytes(b"%PDF")

        result = run(cli_runner, temp_db, "inbox", "add", str(invoice))
        assert result.exit_code == 0
        assert "Added 'factura_luz.pdf' to the inbox (ID: 1, kind: invoice)" in result.output

        result = run(cli_runner, temp_db, "inbox", "ocr", "1", "--response", str(fixtures_dir / "ocr_invoice.json"))
        assert result.exit_code == 0
        assert "OCR status: OK" in result.output

        result = run(cli_runner, temp_db, "inbox", "route", "1")
        assert result.exit_code == 1
        assert "Missing: assignment" in result.output

        result = run(cli_runner, temp_db, "inbox", "route", "1", "--property", "calle-mayor-3")
        assert result.exit_code == 0
        assert "Saved to fiscalidad/detalle/create" in result.output

        result = run(cli_runner, temp_db, "inbox", "show", "1")
        assert result.exit_code == 0
        assert "Status: SAVED" in result.output
        assert "provider: IBERDROLA CLIENTES S.A.U." in result.output
        assert "routed:" in result.output

    def test_correct(self, cli_runner, temp_db, tmp_path):
        doc = tmp_path / "recibo.pdf"
        doc.write_bytes(b"%PDF")
        run(cli_runner, temp_db, "inbox", "add", str(doc))

        result = run(cli_runner, temp_db, "inbox", "correct", "1", "--set", "amount=49,10", "--set", "provider=Iberdrola")
        assert result.exit_code == 0
        assert "Updated amount, provider (OCR status: OK)" in result.output

    def test_statement_routed_into_account(self, cli_runner, temp_db, sample_account, tmp_path, fixtures_dir):
        statement = tmp_path / "santander_statement.csv"
        shutil.copy(fixtures_dir / "santander_statement.csv", statement)
        run(cli_runner, temp_db, "inbox", "add", str(statement))

        result = run(
            cli_runner, temp_db, "inbox", "route", "1", "--personal", "--account", str(sample_account.id)
        )
        assert result.exit_code == 0
        assert "5 imported, 1 skipped" in result.output

    def test_list_and_missing_item(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "inbox", "list")
        assert "Inbox is empty." in result.output

        result = run(cli_runner, temp_db, "inbox", "show", "7")
        assert result.exit_code == 1
        assert "Inbox item 7 not found" in result.output


class TestValidateCommand:
    """finca validate."""

    def test_reports_each_record(self, cli_runner, temp_db, tmp_path):
        records = {
            "gastos": [
                {
                    "provider": "Iberdrola",
                    "issue_date": "2099-01-15",
                    "expected_payment_date": "2099-01-30",
                    "total": 150,
                    "base": 100,
                    "iva": 40,
                    "aeat_category": "suministros",
                    "destination": "personal",
                }
            ]
        }
        path = tmp_path / "records.json"
        path.write_text(json.dumps(records), encoding="utf-8")

        result = run(cli_runner, temp_db, "validate", str(path))
        assert result.exit_code == 1
        assert "gastos[1]: error" in result.output
        assert "does not match base+IVA" in result.output
        assert "1 records: 0 valid, 1 invalid" in result.output

    def test_bad_json(self, cli_runner, temp_db, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{oops", encoding="utf-8")
        result = run(cli_runner, temp_db, "validate", str(path))
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    @pytest.mark.parametrize(
        "records",
        [{"gastos": "factura"}, {"gastos": {"total": 10}}, {"ingresos": [], "gastos": [1, 2]}],
    )
    def test_records_of_wrong_shape(self, cli_runner, temp_db, tmp_path, records):
        path = tmp_path / "records.json"
        path.write_text(json.dumps(records), encoding="utf-8")
        result = run(cli_runner, temp_db, "validate", str(path))
        assert result.exit_code == 1
        assert "Error: expected an object with ingresos, gastos, capex lists of objects" in result.output


class TestLoanCommand:
    """finca loan schedule."""

    def test_schedule(self, cli_runner, temp_db):
        result = run(
            cli_runner,
            temp_db,
            "loan",
            "schedule",
            "--principal",
            "10.000,00",
            "--rate",
            "12",
            "--months",
            "12",
            "--start-date",
            "31/01/2024",
        )
        assert result.exit_code == 0
        assert "2024-02-29" in result.output
        assert "888.49" in result.output
        assert "Total interest:" in result.output

    def test_bad_principal(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "loan", "schedule", "--principal", "0", "--rate", "3", "--months", "12")
        assert result.exit_code == 1
        assert "Principal must be greater than 0" in result.output
