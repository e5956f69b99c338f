from __future__ import annotations

import subprocess
import sys
from pathlib import Path


SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "bootstrap_admin.py"


def _run_script(*args: str) -> str:
    completed = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


def test_bootstrap_script_emits_sql_for_user_id_target() -> None:
    output = _run_script("--user-id", "42", "--role", "business_user")

    assert "update users" in output
    assert "where id = 42;" in output
    assert "role = 'business_user'::user_role" in output
    assert "is_active = true" not in output
    assert "refresh_token = null" in output


def test_bootstrap_script_emits_sql_for_email_target() -> None:
    output = _run_script("--email", " Admin@Example.com ", "--reactivate")

    assert "where email = 'admin@example.com';" in output
    assert "role = 'admin'::user_role" in output
    assert "is_active = true" in output


def test_bootstrap_script_escapes_quotes_in_email() -> None:
    output = _run_script("--email", "o'brien@example.com")

    assert "where email = 'o''brien@example.com';" in output
