"""
Dashboard Layout Helper
Ensures dashboard files contain the controller panels without duplicating them
"""

import os
import json
import math
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

logger = logging.getLogger(__name__)

DASHBOARD_EXTENSIONS = ('.yaml', '.yml', '.json')

PANEL_WIDTH = 3
PANEL_HEIGHT = 2
PANEL_COLUMN = 1


@dataclass(frozen=True)
class PanelDefinition:
    """Panel that must exist, identified by the widget type it renders"""
    widget_type: str
    title: str
    width: int = PANEL_WIDTH
    height: int = PANEL_HEIGHT


REQUIRED_PANELS = (
    PanelDefinition(widget_type='shelly-thermostats', title='Shelly Thermostats'),
)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _widget_type(panel: Any) -> Optional[str]:
    if not isinstance(panel, dict) or not isinstance(panel.get('widget'), dict):
        return None
    return panel['widget'].get('type')


def next_row(panels: List[Dict[str, Any]]) -> int:
    """First row below the lowest existing panel (1 for an empty layout)"""
    bottom = 1
    for panel in panels:
        if not isinstance(panel, dict):
            continue
        y = _as_number(panel.get('y'))
        h = _as_number(panel.get('h'))
        if y is None or h is None or not math.isfinite(y) or not math.isfinite(h):
            continue
        bottom = max(bottom, math.ceil(y + h))
    return bottom


def ensure_panels(document: Dict[str, Any],
                  definitions: Iterable[PanelDefinition] = REQUIRED_PANELS) -> int:
    """
    Append the required panels missing from a layout document
    Mutates document in place and returns the number of panels added
    """
    panels = document.get('panels')
    if not isinstance(panels, list):
        panels = []
        document['panels'] = panels

    existing = {_widget_type(panel) for panel in panels}
    missing = []
    for definition in definitions:
        if definition.widget_type not in existing:
            missing.append(definition)
            existing.add(definition.widget_type)

    y = next_row(panels)
    for definition in missing:
        panels.append({
            'panelType': 'single',
            'x': PANEL_COLUMN,
            'y': y,
            'w': definition.width,
            'h': definition.height,
            'widget': {
                'type': definition.widget_type,
                'title': definition.title,
                'props': {},
            },
        })
        y += definition.height

    return len(missing)


def resolve_dashboards_dir(override: Optional[str] = None, config: Optional[Dict] = None) -> Path:
    if override:
        return Path(override).resolve()
    env_dir = os.environ.get('DASHBOARDS_DIR')
    if env_dir:
        return Path(env_dir).resolve()
    configured = (config or {}).get('dashboards', {}).get('dir', 'dashboards')
    return Path(configured).resolve()


def locate_dashboard_file(dashboards_dir: Path, name: str) -> Path:
    if not name or '/' in name or '\\' in name or name in ('.', '..'):
        raise ValueError(f"Invalid dashboard name: {name!r}")

    for extension in DASHBOARD_EXTENSIONS:
        candidate = dashboards_dir / f"{name}{extension}"
        if candidate.exists():
            return candidate

    raise FileNotFoundError(f"Dashboard config not found for {name} in {dashboards_dir}")


def load_dashboard(file_path: Path) -> Dict[str, Any]:
    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix == '.json':
            document = json.load(f)
        else:
            document = yaml.safe_load(f)

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"Dashboard config {file_path} is not a mapping")
    return document


def save_dashboard(file_path: Path, document: Dict[str, Any]) -> None:
    with open(file_path, 'w', encoding='utf-8') as f:
        if file_path.suffix == '.json':
            json.dump(document, f, indent=2)
        else:
            yaml.safe_dump(document, f, sort_keys=False, width=120)


def ensure_dashboard_panels(dashboard: str, dashboards_dir: Optional[str] = None,
                            config: Optional[Dict] = None,
                            definitions: Iterable[PanelDefinition] = REQUIRED_PANELS) -> int:
    """Add missing panels to a named dashboard file; writes only when something changed"""
    file_path = locate_dashboard_file(resolve_dashboards_dir(dashboards_dir, config), dashboard)
    document = load_dashboard(file_path)

    added = ensure_panels(document, definitions)
    if added:
        save_dashboard(file_path, document)
        logger.info(f"[LAYOUT] Added {added} panel(s) to {file_path}")
    else:
        logger.debug(f"[LAYOUT] {file_path} already has all required panels")
    return added
