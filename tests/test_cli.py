# SPDX-License-Identifier: Apache-2.0
"""Tests for the command line interface."""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from contract_pdf.cli import (
    DEFAULT_OUTPUT,
    FONT_PATH_ENV,
    build_cascade_config,
    load_definitions,
    main,
    parse_args,
    run_generate,
    run_inspect,
    run_variables,
)
from contract_pdf.core.models import Template, TemplateField
from contract_pdf.fonts.sources import DEFAULT_EMBEDDED_FONT_PATH


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(FONT_PATH_ENV, raising=False)
    monkeypatch.delenv("CONTRACT_PDF_FONT_STORE_URL", raising=False)


@pytest.fixture
def inputs(tmp_path: Path, a4_pdf: bytes) -> dict[str, Path]:
    """Template, record and definitions files."""
    template = Template(
        title="Enrollment",
        pdf_bytes=a4_pdf,
        fields=[
            TemplateField("1", 1, 100.0, 100.0, "{studentName}", 595.0, 842.0, 200.0, 28.0),
            TemplateField("2", 1, 100.0, 200.0, "{Blood Type}", 595.0, 842.0, 200.0, 28.0),
            TemplateField("3", 1, 100.0, 300.0, "{whatsapp}", 595.0, 842.0, 200.0, 28.0),
        ],
    )
    paths = {
        "template": tmp_path / "template.json",
        "record": tmp_path / "record.json",
        "definitions": tmp_path / "definitions.json",
    }
    paths["template"].write_text(template.to_json(), encoding="utf-8")
    paths["record"].write_text(
        json.dumps({"studentName": "Ahmed Ali", "customFields": {"f1": "O+"}}),
        encoding="utf-8",
    )
    paths["definitions"].write_text(
        json.dumps({"customFields": [{"id": "f1", "label": "Blood Type"}]}),
        encoding="utf-8",
    )
    return paths


class TestParseArgs:
    """Tests for parse_args function."""

    def test_generate_defaults(self) -> None:
        args = parse_args(["generate", "-t", "t.json", "-r", "r.json"])
        assert args.command == "generate"
        assert args.template == Path("t.json")
        assert args.output == Path(DEFAULT_OUTPUT)
        assert args.date is None
        assert args.date_format == "arabic"
        assert args.captions is False
        assert args.no_remote_fonts is False

    def test_generate_options(self) -> None:
        args = parse_args(
            [
                "-v",
                "generate",
                "-t",
                "t.json",
                "-r",
                "r.json",
                "--date",
                "2026-01-15",
                "--date-format",
                "iso",
                "--captions",
                "--subset-font",
            ]
        )
        assert args.verbose
        assert args.date == date(2026, 1, 15)
        assert args.date_format == "iso"
        assert args.subset_font

    def test_sys_argv(self) -> None:
        """Test arguments read from sys.argv."""
        with patch.object(sys, "argv", ["contract-pdf", "inspect", "base.pdf"]):
            args = parse_args()
            assert args.input == Path("base.pdf")
            assert args.scale == 1.5

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_font_help_says_none_is_bundled(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit):
            parse_args(["generate", "--help"])
        out = " ".join(capsys.readouterr().out.split())
        assert "No font ships with the package" in out

    def test_invalid_date(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["generate", "-t", "t", "-r", "r", "--date", "15/01/2026"])


class TestConfiguration:
    """Tests for configuration helpers."""

    def test_load_definitions_wrapped(self, inputs: dict[str, Path]) -> None:
        definitions = load_definitions(inputs["definitions"])
        assert [(d.id, d.label) for d in definitions] == [("f1", "Blood Type")]

    def test_load_definitions_none(self) -> None:
        assert load_definitions(None) == []

    def test_cascade_config_default(self) -> None:
        args = parse_args(["generate", "-t", "t", "-r", "r"])
        config = build_cascade_config(args)
        assert config.embedded_path == DEFAULT_EMBEDDED_FONT_PATH
        assert config.cdn_urls

    def test_cascade_config_env_and_flags(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(FONT_PATH_ENV, "/fonts/Cairo.ttf")
        args = parse_args(["generate", "-t", "t", "-r", "r", "--no-remote-fonts"])
        config = build_cascade_config(args)
        assert config.embedded_path == Path("/fonts/Cairo.ttf")
        assert config.cdn_urls == ()

    def test_font_flag_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(FONT_PATH_ENV, "/fonts/env.ttf")
        args = parse_args(["generate", "-t", "t", "-r", "r", "--font", "flag.ttf"])
        assert build_cascade_config(args).embedded_path == Path("flag.ttf")


class TestCommands:
    """Tests for command execution."""

    def test_generate(
        self,
        inputs: dict[str, Path],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        output = tmp_path / "out" / "contract.pdf"
        report_path = tmp_path / "report.json"
        args = parse_args(
            [
                "generate",
                "-t",
                str(inputs["template"]),
                "-r",
                str(inputs["record"]),
                "-d",
                str(inputs["definitions"]),
                "-o",
                str(output),
                "--no-remote-fonts",
                "--font",
                str(tmp_path / "missing.ttf"),
                "--report",
                str(report_path),
            ]
        )
        assert asyncio.run(run_generate(args)) == 0
        assert output.read_bytes().startswith(b"%PDF")

        out = capsys.readouterr().out
        assert "Fields: 2/3 rendered" in out
        assert "Unmatched: {whatsapp}" in out
        assert "Font: Helvetica" in out

        report = json.loads(report_path.read_text(encoding="utf-8"))
        assert report["font_fallback"] is True
        assert report["page_count"] == 1

    def test_generate_missing_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        args = parse_args(["generate", "-t", str(tmp_path / "nope.json"), "-r", "r.json"])
        assert asyncio.run(run_generate(args)) == 1
        assert "File not found" in capsys.readouterr().err

    def test_generate_corrupt_base(
        self,
        inputs: dict[str, Path],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        base = tmp_path / "broken.pdf"
        base.write_bytes(b"not a pdf")
        args = parse_args(
            [
                "generate",
                "-t",
                str(inputs["template"]),
                "--base",
                str(base),
                "-r",
                str(inputs["record"]),
                "-o",
                str(tmp_path / "out.pdf"),
                "--no-remote-fonts",
                "--font",
                str(tmp_path / "missing.ttf"),
            ]
        )
        assert asyncio.run(run_generate(args)) == 1
        assert "load_base" in capsys.readouterr().err

    def test_inspect(
        self, tmp_path: Path, make_pdf, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "base.pdf"
        path.write_bytes(make_pdf((595.0, 842.0), (842.0, 595.0)))
        assert run_inspect(parse_args(["inspect", str(path), "--scale", "1"])) == 0
        out = capsys.readouterr().out
        assert "Pages: 2" in out
        assert "Page 1: 595x842 pt, viewport 595x842 px" in out
        assert "Page 2: 842x595 pt" in out

    def test_inspect_missing(self, tmp_path: Path) -> None:
        assert run_inspect(parse_args(["inspect", str(tmp_path / "x.pdf")])) == 1

    def test_variables(
        self, inputs: dict[str, Path], capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_variables(parse_args(["variables", "-d", str(inputs["definitions"])])) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("{اسم_الطالب}\t")
        assert lines[-1] == "{Blood Type}\tBlood Type (custom)"

    def test_main_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["variables"])
        assert exc_info.value.code == 0
