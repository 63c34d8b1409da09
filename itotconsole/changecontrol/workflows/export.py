"""
Modification Exporter

Exports modification records to JSON or YAML for audit and reporting.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Union
import json
import logging
import yaml

from ..statemachine.states import Modification

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""
    JSON = "json"
    YAML = "yaml"


def _document(modifications: Iterable[Modification]) -> Dict[str, Any]:
    records = [m.to_dict() for m in modifications]
    return {
        "modifications": records,
        "metadata": {
            "generator": "ITOT Console",
            "exported_at": datetime.now().isoformat(),
            "count": len(records)
        }
    }


def _export_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def _export_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def export_modifications(
    modifications: Iterable[Modification],
    fmt: Union[str, ExportFormat] = ExportFormat.JSON
) -> str:
    """
    Export modifications to a string

    Args:
        modifications: Records to export
        fmt: "json" or "yaml"

    Returns:
        Serialized document

    Raises:
        ValueError: for any other format
    """
    try:
        export_format = fmt if isinstance(fmt, ExportFormat) else ExportFormat(str(fmt).lower())
    except ValueError:
        raise ValueError(f"Unsupported format: {fmt}") from None

    exporters = {
        ExportFormat.JSON: _export_json,
        ExportFormat.YAML: _export_yaml,
    }
    content = exporters[export_format](_document(modifications))
    logger.debug(f"Exported modifications as {export_format.value} ({len(content)} bytes)")
    return content
