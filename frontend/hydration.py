"""
Передача dehydrated state через HTML.

Сервер кладёт состояние кэша в <script type="application/json" id="__QUERY_STATE__">,
браузер читает его до первого рендера компонентов.
"""

import json
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from shared.logging_config import logger


QUERY_STATE_SCRIPT_ID = "__QUERY_STATE__"

# Символы, которые нельзя оставлять как есть внутри <script>
_HTML_UNSAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def serialize_state_for_html(state: Dict[str, Any]) -> str:
    payload = json.dumps(state, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_UNSAFE.items():
        payload = payload.replace(char, escaped)
    return payload


def render_state_script(state: Dict[str, Any]) -> str:
    return (
        f'<script type="application/json" id="{QUERY_STATE_SCRIPT_ID}">'
        f"{serialize_state_for_html(state)}"
        "</script>"
    )


def read_dehydrated_state(html: str) -> Optional[Dict[str, Any]]:
    """Достать dehydrated state из HTML страницы. None - если его нет или он битый."""
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id=QUERY_STATE_SCRIPT_ID)
    if script is None:
        return None
    raw = script.string or ""
    if not raw.strip():
        return None
    try:
        state = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Не удалось разобрать состояние кэша из страницы: %s", e)
        return None
    if not isinstance(state, dict):
        logger.warning("Состояние кэша в странице имеет неожиданный тип: %s", type(state).__name__)
        return None
    return state
