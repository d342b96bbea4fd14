"""
memora/services/llm.py
-----------------------
Shared plumbing for the text-generation calls.

  get_chat_model()     — ChatOpenAI configured with the timeout / retry bounds
                         from settings, so a hung call resolves to the caller's
                         fallback instead of blocking indefinitely
  run_json_chain()     — prompt | llm | StrOutputParser, then parse the JSON
                         object out of the raw text; returns None on any failure
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from memora.settings import get_settings

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def get_chat_model(model: Optional[str] = None, temperature: float = 0) -> ChatOpenAI:
    settings = get_settings()
    return ChatOpenAI(
        model=model or settings.llm_model,
        temperature=temperature,
        timeout=settings.llm_timeout,
        max_retries=settings.llm_max_retries,
        api_key=settings.openai_api_key,
    )


def parse_json_output(raw: str) -> Optional[JsonDict]:
    """Pull a JSON object out of model output (bare, fenced, or embedded in prose)."""
    if not raw or not raw.strip():
        return None

    candidates = [raw.strip()]
    fenced = _FENCED_JSON.search(raw)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = raw.find("{"), raw.rfind("}")
    if start != -1 and end > start:
        candidates.append(raw[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def run_json_chain(
    prompt: ChatPromptTemplate,
    llm: Runnable,
    variables: JsonDict,
    *,
    name: str,
) -> Optional[JsonDict]:
    """
    Invoke prompt | llm | StrOutputParser and parse a JSON object.

    Returns None when the call raises, times out, returns nothing, or returns
    something that is not a JSON object. Callers own the fallback.
    """
    chain = prompt | llm | StrOutputParser()
    try:
        raw = chain.invoke(variables)
    except Exception as e:
        logger.warning("%s call failed: %s", name, e)
        return None

    parsed = parse_json_output(raw)
    if parsed is None:
        logger.warning("%s returned no usable JSON (%d chars)", name, len(raw or ""))
    return parsed
