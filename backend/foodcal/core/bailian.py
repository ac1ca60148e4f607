import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from foodcal.core.config import Settings
from foodcal.core.exceptions import UpstreamError

logger = logging.getLogger("foodcal.bailian")


def _redact_key(s: str, api_key: Optional[str] = None) -> str:
    """
    Redact bearer tokens (and the literal key, if given) so we never leak API keys in logs.
    """
    if not s:
        return s
    s = re.sub(r"(Bearer\s+)([^\s\"']+)", r"\1REDACTED", s)
    if api_key:
        s = s.replace(api_key, "REDACTED")
    return s


def upstream_error_message(body: Any) -> Optional[str]:
    """
    Human-readable message from an OpenAI-style error body, if it carries one:
      {"error": {"message": "..."}}, {"error": "..."} or {"message": "..."}
    """
    if not isinstance(body, dict):
        return None

    err = body.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    if isinstance(err, str) and err.strip():
        return err.strip()

    msg = body.get("message")
    if isinstance(msg, str) and msg.strip():
        return msg.strip()
    return None


def extract_content(data: Any) -> Optional[str]:
    """
    choices[0].message.content as text, or None when the reply has no usable text.
    Some compatible servers return content as a list of typed parts; text parts are joined.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None

    if isinstance(content, list):
        content = "".join(
            p.get("text", "") for p in content if isinstance(p, dict) and p.get("type", "text") == "text"
        )
    if not isinstance(content, str) or not content:
        return None
    return content


async def chat_completion(
    client: httpx.AsyncClient,
    settings: Settings,
    *,
    model: str,
    messages: List[Dict[str, Any]],
) -> Optional[str]:
    """
    POST {base}/chat/completions and return the reply text (None if empty).

    Raises UpstreamError on transport errors, timeouts, non-2xx and bodies that
    are not JSON. No retries.
    """
    api_key = settings.BAILIAN_API_KEY.strip()
    url = settings.chat_completions_url
    payload = {"model": model, "messages": messages}
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    try:
        r = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise UpstreamError(f"{model} request timed out: {e!r}") from e
    except httpx.HTTPError as e:
        raise UpstreamError(_redact_key(f"{model} request failed: {e!r}", api_key)) from e

    if r.status_code >= 400:
        try:
            body: Any = r.json()
        except ValueError:
            body = r.text
        safe_body = _redact_key(r.text, api_key)[:2000]
        raise UpstreamError(
            f"{model} request failed: {r.status_code}\nURL:\n{url}\nBODY:\n{safe_body}",
            message=upstream_error_message(body),
            status_code=r.status_code,
            body=body,
        )

    try:
        data = r.json()
    except ValueError as e:
        raise UpstreamError(
            f"{model} returned a non-JSON body: {_redact_key(r.text, api_key)[:2000]}",
            status_code=r.status_code,
        ) from e

    content = extract_content(data)
    if content is None:
        logger.warning("Empty content from %s; raw=%s", model, json.dumps(data, ensure_ascii=False)[:2000])
    return content
