"""Tests for the command-line interface (templategen.cli).

Tests cover:
- argument parsing and subcommand aliases
- generate: writes files, dry-run, exit status on failure, config file use
- preview (text and JSON), validate, list
- error exits for missing directories and models
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from templategen.cli import build_parser, main
from templategen.utils import console


ABORTING_HOOKS = "def prepare_model(model):\n    return None\n"


@pytest.fixture
def entity_templates(write_template, templates_dir: Path) -> Path:
    write_template(
        "Entity",
        "class {{ item.Name }} {}",
        {
            "Target": "Entities",
            "ExportPath": "Entities/{{ item.Name }}.cs",
            "GenerateIf": "item.IsAbstract eq false",
            "Description": "One class per entity",
        },
    )
    write_template("Readme", "# {{ Namespace }}", {"ExportPath": "README.md"})
    return templates_dir


def _run(argv: list[str]) -> int:
    try:
        main(argv)
    except SystemExit as exc:
        return int(exc.code or 0)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:
    @pytest.mark.unit
    def test_generate_options(self):
        args = build_parser().parse_args(
            ["generate", "-t", "tpl", "-m", "m.json", "-o", "out", "--dry-run", "--continue-on-error", "-v"]
        )
        assert args.templates == "tpl"
        assert args.model == "m.json"
        assert args.output == "out"
        assert args.dry_run and args.continue_on_error and args.verbose

    @pytest.mark.unit
    def test_aliases(self):
        parser = build_parser()
        assert parser.parse_args(["gen", "-t", "x"]).handler.__name__ == "cmd_generate"
        assert parser.parse_args(["val", "-t", "x"]).handler.__name__ == "cmd_validate"
        assert parser.parse_args(["ls"]).handler.__name__ == "cmd_list"

    @pytest.mark.unit
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerateCommand:
    @pytest.mark.integration
    def test_generates_files(self, entity_templates, model_file, output_dir, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        code = _run(["generate", "-t", str(entity_templates), "-m", str(model_file), "-o", str(output_dir)])
        assert code == 0
        assert (output_dir / "Entities" / "Customer.cs").read_text(encoding="utf-8") == "class Customer {}"
        assert (output_dir / "README.md").read_text(encoding="utf-8") == "# Acme.Domain"
        assert not (output_dir / "Entities" / "EntityBase.cs").exists()

    @pytest.mark.unit
    def test_dry_run_writes_nothing(self, entity_templates, model_file, output_dir, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            code = _run(
                ["generate", "-t", str(entity_templates), "-m", str(model_file), "-o", str(output_dir), "--dry-run"]
            )
        assert code == 0
        assert list(output_dir.iterdir()) == []
        assert "3 file(s) would be generated" in capture.get()

    @pytest.mark.unit
    def test_failure_exits_1(self, write_template, templates_dir, model_file, output_dir, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        write_template("Fails", "x", {"ExportPath": "x.txt"}, hooks=ABORTING_HOOKS)
        code = _run(["generate", "-t", str(templates_dir), "-m", str(model_file), "-o", str(output_dir)])
        assert code == 1

    @pytest.mark.unit
    def test_continue_on_error_exits_0(self, write_template, templates_dir, model_file, output_dir, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        write_template("Fails", "x", {"ExportPath": "x.txt"}, hooks=ABORTING_HOOKS)
        write_template("Works", "ok", {"ExportPath": "ok.txt"})
        code = _run(
            ["generate", "-t", str(templates_dir), "-m", str(model_file), "-o", str(output_dir), "--continue-on-error"]
        )
        assert code == 0
        assert (output_dir / "ok.txt").exists()

    @pytest.mark.unit
    def test_missing_template_dir(self, model_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            code = _run(["generate", "-t", str(tmp_path / "nope"), "-m", str(model_file)])
        assert code == 1
        assert "Template directory not found" in capture.get()

    @pytest.mark.unit
    def test_missing_model(self, entity_templates, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert _run(["generate", "-t", str(entity_templates), "-m", str(tmp_path / "none.json")]) == 1
        assert _run(["generate", "-t", str(entity_templates)]) == 1

    @pytest.mark.unit
    def test_invalid_model_json(self, entity_templates, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")
        assert _run(["generate", "-t", str(entity_templates), "-m", str(bad)]) == 1

    @pytest.mark.integration
    def test_uses_config_file(self, entity_templates, model_file, tmp_path, monkeypatch):
        config_path = tmp_path / ".generatorrc.json"
        config_path.write_text(
            json.dumps(
                {
                    "template_directory": "templates",
                    "model_path": "model.json",
                    "output_directory": "generated",
                }
            ),
            encoding="utf-8",
        )
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        assert _run(["generate", "-c", str(config_path)]) == 0
        assert (tmp_path / "generated" / "README.md").exists()

    @pytest.mark.unit
    def test_bad_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config_path = tmp_path / "broken.json"
        config_path.write_text("{", encoding="utf-8")
        assert _run(["generate", "-c", str(config_path)]) == 1

    @pytest.mark.integration
    def test_plugin_option(self, write_template, templates_dir, model_file, output_dir, monkeypatch, tmp_path):
        plugin_path = tmp_path / "shout.py"
        plugin_path.write_text("filters = {'shout': lambda v: str(v).upper()}\n", encoding="utf-8")
        write_template("Readme", "# {{ Namespace | shout }}", {"ExportPath": "README.md"})
        monkeypatch.chdir(tmp_path)
        code = _run(
            ["generate", "-t", str(templates_dir), "-m", str(model_file), "-o", str(output_dir), "-p", str(plugin_path)]
        )
        assert code == 0
        assert (output_dir / "README.md").read_text(encoding="utf-8") == "# ACME.DOMAIN"

    @pytest.mark.integration
    def test_plugins_from_config_file(self, write_template, templates_dir, model_file, tmp_path, monkeypatch):
        (tmp_path / "plugins").mkdir()
        (tmp_path / "plugins" / "stamp.py").write_text(
            "def transform_model(model):\n    return dict(model, Stamp='v1')\n", encoding="utf-8"
        )
        write_template("Stamp", "{{ Stamp }}", {"ExportPath": "stamp.txt"})
        config_path = tmp_path / ".generatorrc.json"
        config_path.write_text(
            json.dumps(
                {
                    "template_directory": "templates",
                    "model_path": "model.json",
                    "output_directory": "generated",
                    "plugins": ["plugins/stamp.py"],
                }
            ),
            encoding="utf-8",
        )
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        assert _run(["generate", "-c", str(config_path)]) == 0
        assert (tmp_path / "generated" / "stamp.txt").read_text(encoding="utf-8") == "v1"

    @pytest.mark.unit
    def test_missing_plugin_exits_1(self, entity_templates, model_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        code = _run(["generate", "-t", str(entity_templates), "-m", str(model_file), "-p", str(tmp_path / "nope.py")])
        assert code == 1


# ---------------------------------------------------------------------------
# preview / validate / list
# ---------------------------------------------------------------------------


class TestOtherCommands:
    @pytest.mark.unit
    def test_preview_json(self, entity_templates, model_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            code = _run(["preview", "-t", str(entity_templates), "-m", str(model_file), "--json"])
        assert code == 0
        previews = json.loads(capture.get())
        by_name = {p["template"]: p for p in previews}
        assert [f["path"] for f in by_name["Entity"]["files"]] == [
            "Entities/Customer.cs",
            "Entities/Order.cs",
        ]
        assert by_name["Readme"]["files"][0]["content"] == "# Acme.Domain"

    @pytest.mark.unit
    def test_preview_text(self, entity_templates, model_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            assert _run(["preview", "-t", str(entity_templates), "-m", str(model_file)]) == 0
        assert "README.md" in capture.get()

    @pytest.mark.unit
    def test_validate_ok(self, entity_templates, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            assert _run(["validate", "-t", str(entity_templates)]) == 0
        assert "All templates are valid" in capture.get()

    @pytest.mark.unit
    def test_validate_fails_on_invalid_or_broken(self, write_template, templates_dir, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        write_template("NoPath", "x", {})
        assert _run(["validate", "-t", str(templates_dir), "-v"]) == 1

        (templates_dir / "NoPath.hbs.settings.json").write_text('{"ExportPath": "x"}', encoding="utf-8")
        write_template("Broken", "x", "{oops")
        assert _run(["validate", "-t", str(templates_dir)]) == 1

    @pytest.mark.unit
    def test_list_json(self, entity_templates, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            assert _run(["list", "-t", str(entity_templates), "--json"]) == 0
        rows = json.loads(capture.get())
        assert [r["name"] for r in rows] == ["Entity", "Readme"]
        assert rows[0]["target"] == "Entities"
        assert rows[0]["description"] == "One class per entity"

    @pytest.mark.unit
    def test_list_table(self, entity_templates, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with console.capture() as capture:
            assert _run(["list", "-t", str(entity_templates)]) == 0
        assert "Entity" in capture.get()
