"""
src/tools/search.py — External Search (open knowledge lookup)

This module provides:
- external_search(searcher, query): answer a general-knowledge question with a web-search model

Used when no hospital department covers the request (health tips, public
statistics, ...). The answer comes back with the citation URLs found in the
search response, which the router shows as sources under the final answer.
"""


from __future__ import annotations

import json
from typing import Any, Optional

import structlog

from orchestrator.errors import OrchestratorError
from orchestrator.grounding import extract_citation_urls, get_field


logger = structlog.get_logger(__name__)


def external_search(searcher: Any, query: Optional[str]) -> str:
    """
    Run one web search.

    Args:
        searcher: Anything with search(query) -> raw chat completion (see OpenAIChatModel.search).
        query: The user's question, rephrased by the model.

    Returns:
        JSON text: {"status": "success", "answer": ..., "citations": [urls]}
        or {"status": "error", "message": ...} when the query is empty or search fails.
    """

    if not isinstance(query, str) or not query.strip():
        return json.dumps({"status": "error", "message": "A search query is required."})

    try:
        raw = searcher.search(query.strip())
    except OrchestratorError as e:
        logger.warning("search_failed", error=str(e))
        return json.dumps({"status": "error", "message": f"External search is unavailable: {e}"})

    choices = get_field(raw, "choices") or []
    answer = get_field(get_field(choices[0], "message"), "content") if choices else None
    citations = extract_citation_urls(raw)

    logger.info("search_done", citations=len(citations))

    return json.dumps({"status": "success", "answer": answer or "", "citations": citations}, ensure_ascii=False)
