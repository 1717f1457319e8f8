"""
src/orchestrator/grounding.py

Grounding extractor: pull citation URLs out of a raw model response.

OpenAI web-search answers carry citations as message annotations:

    choices[0].message.annotations = [
        {"type": "url_citation", "url_citation": {"url": ..., "title": ...}},
        ...
    ]

Works on SDK objects and on plain dicts (e.g. a response.model_dump()).
Malformed entries are skipped, never raised on.
"""


from typing import Any, Iterable, List


def get_field(obj: Any, key: str) -> Any:
    """Attribute-or-key access that returns None instead of raising."""

    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)

    return getattr(obj, key, None)

def _annotations(response: Any) -> List[Any]:

    choices = get_field(response, "choices")

    if not choices:
        return []
    try:
        message = get_field(choices[0], "message")
    except (TypeError, IndexError, KeyError):
        return []

    annotations = get_field(message, "annotations")

    return list(annotations) if isinstance(annotations, (list, tuple)) else []

def extract_citation_urls(response: Any) -> List[str]:
    """
    Return the distinct citation URLs carried by `response`, in order of appearance.

    Returns an empty list when there is no grounding metadata at all.
    """

    urls: List[str] = []

    for annotation in _annotations(response):
        kind = get_field(annotation, "type")
        if kind is not None and kind != "url_citation":
            continue
        url = get_field(get_field(annotation, "url_citation"), "url")
        if isinstance(url, str) and url.strip():
            urls.append(url.strip())

    return merge_urls(urls)

def merge_urls(*groups: Iterable[str]) -> List[str]:
    """Concatenate URL lists, dropping repeats and blanks, keeping first-seen order."""

    seen = set()
    out = []

    for group in groups:
        for url in group or []:
            if not isinstance(url, str) or not url or url in seen:
                continue
            seen.add(url)
            out.append(url)

    return out
