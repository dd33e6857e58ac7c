"""
Tests for template loading and compilation.
"""
import pytest
from pathlib import Path

from mpesa_parser.core.templates import (
    TemplateRegistry, compile_template, get_registry, load_template, TEMPLATES_DIR_ENV
)
from mpesa_parser.models.schema import TransactionType


MINIMAL_TEMPLATE = """
template_id: test_v1
provider: Test
messages:
  - name: receive
    type: RECEIVE
    pattern: '(?P<code>\\w+) got (?P<amount>[0-9.]+) from (?P<entity>.+?) on (?P<date>\\S+) at (?P<time>\\S+)'
statement:
  row_start: '^(?P<code>\\w{10}) (?P<timestamp>\\S+ \\S+)'
  row_end: 'Done (?P<amount>\\S+)$'
  row: '^(?P<code>\\w{10}) (?P<timestamp>\\S+ \\S+) (?P<details>.+?) Done (?P<amount>\\S+)$'
"""


class TestBundledTemplate:

    @pytest.fixture
    def template(self):
        return load_template("mpesa_v1")

    def test_message_precedence(self, template):
        assert [shape.name for shape in template.messages] == ["paybill", "send", "receive"]
        assert [shape.type for shape in template.messages] == [
            TransactionType.PAYBILL, TransactionType.SEND, TransactionType.RECEIVE
        ]

    def test_row_start_is_case_sensitive(self, template):
        assert template.statement.row_start.match("TL6HZ097WP 2025-12-06 10:15:00")
        assert not template.statement.row_start.match("tl6hz097wp 2025-12-06 10:15:00")

    def test_paybill_keywords(self, template):
        assert template.statement.is_paybill("Pay Bill Online")
        assert template.statement.is_paybill("PAYBILL to KPLC")
        assert template.statement.is_paybill("merchant payment")
        assert not template.statement.is_paybill("Customer Transfer")

    def test_spreadsheet_aliases(self, template):
        names = [name for name, _ in template.spreadsheet.aliases]
        assert names == ["receipt", "date", "description", "amount", "paid_in", "withdrawn"]

    def test_registry_is_shared(self):
        assert get_registry() is get_registry()


class TestTemplateRegistry:

    def test_loads_custom_directory(self, tmp_path):
        (tmp_path / "test_v1.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        registry = TemplateRegistry(tmp_path)

        assert registry.list_templates() == ["test_v1"]
        template = registry.get_template("test_v1")
        assert template.provider == "Test"
        assert template.currency == "KES"
        assert template.statement.paybill_keywords == ()

    def test_bad_template_is_skipped(self, tmp_path):
        (tmp_path / "good.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        (tmp_path / "bad.yaml").write_text("template_id: bad\nmessages:\n  - type: SEND\n    pattern: '('\n",
                                           encoding="utf-8")
        registry = TemplateRegistry(tmp_path)

        assert registry.list_templates() == ["test_v1"]
        with pytest.raises(ValueError):
            registry.get_template("bad")

    @pytest.mark.parametrize("content", [
        "- a\n- b\n",
        "just a string\n",
        "template_id: bad\nstatement: [1, 2]\n",
        "template_id: bad\nmessages: {send: x}\n",
        "template_id: bad\nmessages:\n  - just a pattern\n",
        MINIMAL_TEMPLATE.replace("test_v1", "bad") + "spreadsheet: [1]\n",
        MINIMAL_TEMPLATE.replace("test_v1", "bad") + "spreadsheet:\n  columns:\n    date: Date\n",
        MINIMAL_TEMPLATE.replace("test_v1", "bad") + "spreadsheet:\n  fuzzy_threshold: high\n",
    ])
    def test_wrongly_shaped_template_is_skipped(self, tmp_path, content):
        (tmp_path / "good.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        (tmp_path / "bad.yaml").write_text(content, encoding="utf-8")
        registry = TemplateRegistry(tmp_path)

        assert registry.list_templates() == ["test_v1"]

    def test_missing_directory(self, tmp_path):
        registry = TemplateRegistry(tmp_path / "missing")
        assert registry.list_templates() == []

    def test_environment_override(self, tmp_path, monkeypatch):
        (tmp_path / "test_v1.yaml").write_text(MINIMAL_TEMPLATE, encoding="utf-8")
        monkeypatch.setenv(TEMPLATES_DIR_ENV, str(tmp_path))

        assert TemplateRegistry().templates_dir == Path(tmp_path)
        assert "test_v1" in TemplateRegistry().list_templates()


class TestCompileTemplate:

    def test_missing_template_id(self):
        with pytest.raises(ValueError):
            compile_template({})

    @pytest.mark.parametrize("data", [["a", "b"], "just a string", 42])
    def test_non_mapping_document(self, data):
        with pytest.raises(ValueError, match="must be a mapping"):
            compile_template(data)

    def test_statement_must_be_mapping(self):
        with pytest.raises(ValueError, match="Section 'statement'"):
            compile_template({"template_id": "x", "statement": [1, 2]})

    def test_missing_named_group(self):
        data = {
            "template_id": "x",
            "messages": [{"name": "send", "type": "SEND", "pattern": "(?P<code>\\w+) sent"}],
            "statement": {"row_start": "a", "row_end": "b", "row": "c"},
        }
        with pytest.raises(ValueError, match="missing groups"):
            compile_template(data)

    def test_invalid_type(self):
        data = {"template_id": "x", "messages": [{"name": "gift", "type": "GIFT", "pattern": "x"}]}
        with pytest.raises(ValueError, match="invalid type"):
            compile_template(data)

    def test_missing_statement_section(self):
        with pytest.raises(ValueError, match="Statement section"):
            compile_template({"template_id": "x"})
