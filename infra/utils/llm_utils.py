import json
import logging
import os
import re
from functools import lru_cache
from typing import Any, Dict, Optional

from groq import Groq

logger = logging.getLogger(__name__)


def init_groq_client(api_key: Optional[str] = None) -> Groq:
    key = api_key or os.environ.get("GROQ_API_KEY")
    if not key:
        raise ValueError("GROQ_API_KEY not set in environment and no api_key provided")
    return Groq(api_key=key)


@lru_cache(maxsize=1)
def get_groq_client() -> Groq:
    """Singleton Groq client (per-process).

    Ghi chú (vi):
    - Init client nhiều lần thường không cần thiết và làm request đầu chậm hơn.
    - Cache theo process là đủ (uvicorn workers => mỗi worker có 1 client riêng).
    """
    return init_groq_client()


def create_groq_completion(client, messages, model: str, stream: bool = False, **kwargs):
    params = {"model": model, "messages": messages, "stream": stream}
    params.update(kwargs or {})
    return client.chat.completions.create(**params)


def extract_groq_content(response) -> str:
    try:
        choice = response.choices[0]
        # message.content có thể là str hoặc object/dict tuỳ version
        msg = getattr(choice, "message", None)
        if msg is not None:
            content = getattr(msg, "content", None)
            if isinstance(content, str):
                return content
            if isinstance(content, dict):
                return content.get("text") or content.get("content") or ""

        text = getattr(choice, "text", None)
        if text:
            return text
    except (AttributeError, IndexError, TypeError):
        pass

    try:
        # Fallback: access kiểu dict (tương thích nhiều phiên bản response)
        choice = response["choices"][0]
        msg = choice.get("message")
        if isinstance(msg, dict):
            c = msg.get("content")
            if isinstance(c, str):
                return c
            if isinstance(c, dict):
                return c.get("text") or c.get("content") or ""
        return choice.get("text", "")
    except (KeyError, IndexError, TypeError):
        return ""


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the first `{...}` block of a model reply.

    Raises ValueError when there is no object or it is not valid JSON.
    """
    match = re.search(r"\{.*\}", text or "", re.DOTALL)
    if not match:
        raise ValueError("No valid JSON found in response")
    parsed = json.loads(match.group())
    if not isinstance(parsed, dict):
        raise ValueError("Response JSON is not an object")
    return parsed
