"""
Template loading and pattern-table compilation.
"""
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import yaml

from ..models.schema import TransactionType

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = "mpesa_v1"
TEMPLATES_DIR_ENV = "MPESA_PARSER_TEMPLATES_DIR"

MESSAGE_GROUPS = ("code", "amount", "entity", "date", "time")
ROW_GROUPS = ("code", "timestamp", "details", "amount")


@dataclass(frozen=True)
class MessageShape:
    """One entry of the single-line message table."""
    name: str
    type: TransactionType
    regex: re.Pattern


@dataclass(frozen=True)
class StatementAnchors:
    """Patterns that delimit a multi-line statement row."""
    row_start: re.Pattern
    row_end: re.Pattern
    row: re.Pattern
    paybill_keywords: Tuple[re.Pattern, ...]

    def is_paybill(self, details: str) -> bool:
        return any(keyword.search(details) for keyword in self.paybill_keywords)


@dataclass(frozen=True)
class SpreadsheetColumns:
    """Column aliases for spreadsheet exports."""
    fuzzy_threshold: float
    aliases: Tuple[Tuple[str, Tuple[str, ...]], ...]


@dataclass(frozen=True)
class Template:
    """A compiled provider template."""
    template_id: str
    provider: str
    currency: str
    messages: Tuple[MessageShape, ...]
    statement: StatementAnchors
    spreadsheet: SpreadsheetColumns


def _compile(spec: Any, required_groups: Tuple[str, ...] = (), default_ignore_case: bool = True) -> re.Pattern:
    """
    Compile a pattern entry from a template.

    Args:
        spec: Either a bare pattern string or a mapping with ``pattern`` and
            optional ``ignore_case``
        required_groups: Named groups the pattern must define
        default_ignore_case: Flag used when the entry does not set one

    Returns:
        Compiled regular expression
    """
    if isinstance(spec, str):
        pattern, ignore_case = spec, default_ignore_case
    elif isinstance(spec, dict) and 'pattern' in spec:
        pattern = spec['pattern']
        ignore_case = spec.get('ignore_case', default_ignore_case)
    else:
        raise ValueError(f"Invalid pattern entry: {spec!r}")

    try:
        regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e

    missing = [group for group in required_groups if group not in regex.groupindex]
    if missing:
        raise ValueError(f"Pattern {pattern!r} is missing groups: {', '.join(missing)}")

    return regex


def _section(data: Dict[str, Any], key: str, expected: type) -> Any:
    """Fetch an optional template section, checking its YAML type."""
    value = data.get(key)
    if value is None:
        return expected()
    if not isinstance(value, expected):
        raise ValueError(f"Section '{key}' must be a {expected.__name__}, got {type(value).__name__}")
    return value


def compile_template(data: Dict[str, Any]) -> Template:
    """
    Compile raw YAML template data into an immutable Template.

    Args:
        data: Parsed YAML document

    Returns:
        Template object
    """
    if not isinstance(data, dict):
        raise ValueError(f"Template must be a mapping, got {type(data).__name__}")

    template_id = data.get('template_id')
    if not template_id:
        raise ValueError("Template has no 'template_id'")

    message_entries = _section(data, 'messages', list)
    messages = []
    for entry in message_entries:
        if not isinstance(entry, dict):
            raise ValueError(f"Message shape must be a mapping: {entry!r}")
        try:
            shape_type = TransactionType(entry['type'])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Message shape {entry!r} has an invalid type") from e
        messages.append(MessageShape(
            name=entry.get('name', shape_type.value.lower()),
            type=shape_type,
            regex=_compile(entry.get('pattern'), MESSAGE_GROUPS)
        ))

    statement_config = _section(data, 'statement', dict)
    try:
        statement = StatementAnchors(
            row_start=_compile(statement_config['row_start'], ("code", "timestamp"), default_ignore_case=False),
            row_end=_compile(statement_config['row_end'], ("amount",)),
            row=_compile(statement_config['row'], ROW_GROUPS),
            paybill_keywords=tuple(
                _compile(keyword) for keyword in _section(statement_config, 'paybill_keywords', list)
            )
        )
    except KeyError as e:
        raise ValueError(f"Statement section is missing {e}") from e

    spreadsheet_config = _section(data, 'spreadsheet', dict)
    columns = _section(spreadsheet_config, 'columns', dict)
    for name, aliases in columns.items():
        if not isinstance(aliases, list):
            raise ValueError(f"Aliases for column '{name}' must be a list")

    spreadsheet = SpreadsheetColumns(
        fuzzy_threshold=float(spreadsheet_config.get('fuzzy_threshold', 85)),
        aliases=tuple(
            (name, tuple(str(alias) for alias in aliases))
            for name, aliases in columns.items()
        )
    )

    return Template(
        template_id=str(template_id),
        provider=data.get('provider', ''),
        currency=data.get('currency', 'KES'),
        messages=tuple(messages),
        statement=statement,
        spreadsheet=spreadsheet
    )


def default_templates_dir() -> Path:
    """Templates directory, honouring the environment override."""
    override = os.environ.get(TEMPLATES_DIR_ENV)
    if override:
        return Path(override)
    return Path(__file__).parent.parent / "templates"


class TemplateRegistry:
    """Loads and serves compiled templates from a directory."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = Path(templates_dir) if templates_dir else default_templates_dir()
        self.templates: Dict[str, Template] = {}
        self._load_templates()

    def _load_templates(self):
        """Load all available templates."""
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return

        for yaml_file in sorted(self.templates_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r', encoding='utf-8') as f:
                    template = compile_template(yaml.safe_load(f) or {})
                self.templates[template.template_id] = template
                logger.debug(f"Loaded template: {template.template_id}")
            except (OSError, yaml.YAMLError, ValueError) as e:
                logger.error(f"Error loading template {yaml_file}: {e}")

    def get_template(self, template_id: str) -> Template:
        """Get a compiled template by ID."""
        template = self.templates.get(template_id)
        if template is None:
            raise ValueError(f"Template not found: {template_id}")
        return template

    def list_templates(self) -> List[str]:
        """List all available template IDs."""
        return list(self.templates.keys())


@lru_cache(maxsize=None)
def _registry_for(templates_dir: Path) -> TemplateRegistry:
    return TemplateRegistry(templates_dir)


def get_registry(templates_dir: Optional[Path] = None) -> TemplateRegistry:
    """Shared registry for a templates directory; YAML is read once per directory."""
    return _registry_for(Path(templates_dir) if templates_dir else default_templates_dir())


def load_template(template_id: str = DEFAULT_TEMPLATE_ID) -> Template:
    """
    Convenience function to fetch a compiled template.

    Args:
        template_id: Template ID to load

    Returns:
        Template object

    Raises:
        ValueError: If no template with this ID exists
    """
    return get_registry().get_template(template_id)
