import json
from typing import Any, Dict, List

import requests

from app.helpers.tools import tool_choice
from app.models.ai_settings import GatewaySettings
from app.utils.exceptions import ExternalServiceError, ScoringOutputError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

GATEWAY = "llm-gateway"


def gateway_tool_call(settings: GatewaySettings, messages: List[Dict[str, str]], tool: Dict[str, Any]) -> Dict[str, Any]:
    """
    Make one chat-completions call that forces `tool` and return its parsed arguments.

    Raises ExternalServiceError when the gateway is unreachable, times out or
    answers with a non-2xx status, and ScoringOutputError when the answer has
    no usable tool call.
    """
    try:
        resp = requests.post(
            settings.url,
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": settings.model,
                "messages": messages,
                "tools": [tool],
                "tool_choice": tool_choice(tool),
            },
            timeout=settings.timeout,
        )
    except requests.RequestException as e:
        raise ExternalServiceError(
            f"Gateway request failed: {e}", service_name=GATEWAY, cause=e
        ) from e

    if not resp.ok:
        logger.warning(f"AI gateway error: {resp.status_code} {resp.text[:500]}")
        raise ExternalServiceError(
            f"Gateway answered {resp.status_code}", service_name=GATEWAY, status_code=resp.status_code
        )

    return tool_arguments(resp, tool["function"]["name"])


def tool_arguments(resp: requests.Response, tool_name: str) -> Dict[str, Any]:
    try:
        payload = resp.json()
        call = payload["choices"][0]["message"]["tool_calls"][0]
        args = call["function"]["arguments"]
        # some gateways hand back an object rather than a JSON string
        data = json.loads(args) if isinstance(args, str) else args
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ScoringOutputError(
            f"Unusable tool call in gateway response: {e}", tool_name=tool_name, cause=e
        ) from e

    if not isinstance(data, dict):
        raise ScoringOutputError("Tool arguments are not an object", tool_name=tool_name)
    return data
