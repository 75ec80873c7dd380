from __future__ import annotations

import re
from pathlib import Path

from table_admin.cli.__main__ import main

"""SUMMARY line contract: last stdout line of import / update."""

SUMMARY_RE = re.compile(
    r"^SUMMARY table=(\S+) staged=(\d+) inserted=(\d+) updated=(\d+) errors=(\d+) elapsed_sec=([0-9.]+)$"
)


def test_import_summary_line(write_config: Path, patch_cli_client, capsys):
    csv = write_config.parent.parent / "data" / "new.csv"
    csv.write_text("name,email\nCarol,c@example.com\nDan,d@example.com\n", encoding="utf-8")

    main(["import", "customers", str(csv)])

    last = capsys.readouterr().out.strip().splitlines()[-1]
    m = SUMMARY_RE.match(last)
    assert m is not None, last
    assert m.group(1) == "customers"
    assert (m.group(2), m.group(3), m.group(4), m.group(5)) == ("2", "2", "0", "0")


def test_update_summary_line(write_config: Path, patch_cli_client, capsys):
    csv = write_config.parent.parent / "data" / "upd.csv"
    csv.write_text("id,name\n2,Bobby\n", encoding="utf-8")

    main(["update", "customers", str(csv)])

    lines = capsys.readouterr().out.strip().splitlines()
    m = SUMMARY_RE.match(lines[-1])
    assert m is not None
    assert (m.group(2), m.group(3), m.group(4), m.group(5)) == ("1", "0", "1", "0")
