"""
Citation annotation rewriting.

The assistant emits inline citation markers (e.g. ``【4:0†source】``) and
attaches one annotation per marker with its character span and the cited
file id. Markers are replaced by ``【<source name>】`` working from the
highest start offset down, so a replacement never shifts the span of a
marker that has not been processed yet.
"""

import logging
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from ..llm.assistants import Annotation

logger = logging.getLogger(__name__)

FILE_CITATION = "file_citation"
FALLBACK_SOURCE = "Source"
UNNAMED_SOURCE = "Unknown Source"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")

FilenameLookup = Callable[[str], Awaitable[str]]


def display_name(filename: str) -> str:
    """``EV-302_NEJM_2023.pdf`` -> ``EV-302_NEJM_2023``."""
    if not filename:
        return UNNAMED_SOURCE
    return _EXTENSION_RE.sub("", filename) or UNNAMED_SOURCE


def citation_tag(name: str) -> str:
    return f"【{name}】"


def _start(annotation: Annotation) -> int:
    return annotation.start_index or 0


def apply_citations(text: str, annotations: Iterable[Annotation],
                    source_names: Mapping[str, str]) -> str:
    """
    Replace citation markers in ``text`` with resolved source tags.

    Deterministic and side-effect free. Annotations that are not file
    citations, or carry no marker text, are left alone; a file id missing
    from ``source_names`` gets the generic label.

    Args:
        text: Raw text block value the annotations were computed against
        annotations: Annotations of that block
        source_names: file id -> display name

    Returns:
        Text with markers replaced
    """
    ordered = sorted(annotations, key=_start, reverse=True)
    for annotation in ordered:
        if annotation.type != FILE_CITATION or not annotation.text:
            continue

        name = source_names.get(annotation.file_id or "", FALLBACK_SOURCE)
        replacement = citation_tag(name)
        marker = annotation.text
        start, end = annotation.start_index, annotation.end_index

        if start is not None and end is not None and text[start:end] == marker:
            text = text[:start] + replacement + text[end:]
        elif marker in text:
            # Span drifted from the text; fall back to the first occurrence.
            text = text.replace(marker, replacement, 1)
    return text


class AnnotationRewriter:
    """
    Resolves cited file names through the provider and rewrites markers.

    Names are cached for the duration of one ``rewrite`` call only.
    """

    def __init__(self, lookup_filename: FilenameLookup):
        """
        Args:
            lookup_filename: Coroutine returning the raw filename for a file id
        """
        self._lookup_filename = lookup_filename

    async def _resolve(self, file_id: Optional[str]) -> str:
        if not file_id:
            return FALLBACK_SOURCE
        try:
            return display_name(await self._lookup_filename(file_id))
        except Exception as e:
            logger.warning(
                f"Citation source lookup failed for {file_id}: {e}",
                extra={"extra_fields": {"file_id": file_id, "error": str(e)}}
            )
            return FALLBACK_SOURCE

    async def resolve_names(self, annotations: Iterable[Annotation]) -> Dict[str, str]:
        """Look up each distinct cited file id once."""
        names: Dict[str, str] = {}
        for annotation in annotations:
            if annotation.type != FILE_CITATION or not annotation.file_id:
                continue
            if annotation.file_id not in names:
                names[annotation.file_id] = await self._resolve(annotation.file_id)
        return names

    async def rewrite(self, text: str, annotations: List[Annotation]) -> str:
        """Return ``text`` with citation markers replaced; unchanged when there are none."""
        if not annotations:
            return text
        names = await self.resolve_names(annotations)
        return apply_citations(text, annotations, names)
