import logging
from typing import Optional

import requests

from bizquery.core.config import settings
from bizquery.core.errors import LlmError

logger = logging.getLogger(__name__)


def ollama_chat(messages: list[dict], model: Optional[str] = None, temperature: Optional[float] = None) -> str:
    payload = {
        "model": model or settings.OLLAMA_MODEL,
        "messages": messages,
        "stream": False,
        "options": {
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
            "top_p": 0.95,
        },
    }
    try:
        response = requests.post(settings.OLLAMA_URL, json=payload, timeout=settings.LLM_TIMEOUT)
    except requests.RequestException as e:
        logger.error("Language model request failed: %s", e)
        raise LlmError(f"Language model request failed: {e}") from e

    if response.status_code != 200:
        logger.error("Ollama error %s: %s", response.status_code, response.text)
        raise LlmError(f"Ollama error {response.status_code}", [response.text])

    data = response.json()
    return data.get("message", {}).get("content", "")
