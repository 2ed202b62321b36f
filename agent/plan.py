"""
Plan parsing utilities.
Pulls the plan out of an agent response so it can be shown for approval.
"""

import re
from typing import List, Optional


PLAN_MARKERS = ("here's my plan:", "my plan is:", "here is my plan:")
PLAN_END_MARKER = "END_OF_PLAN"

_LIST_ITEM_RE = re.compile(r"^(?:\d+\.\s+|\*\s+|-\s+).*")


def _truncate_at_end_marker(text: str) -> str:
    idx = text.find(PLAN_END_MARKER)
    return text[:idx] if idx != -1 else text


def _extract_after_marker(text: str) -> Optional[str]:
    """Text after the first marker phrase found, trying them in order, up to END_OF_PLAN.

    An empty section is still a plan.
    """
    lowered = text.lower()
    for marker in PLAN_MARKERS:
        start = lowered.find(marker)
        if start != -1:
            return _truncate_at_end_marker(text[start + len(marker):].strip()).strip()
    return None


def _extract_list_run(text: str) -> Optional[str]:
    """The first run of at least two consecutive list-item lines."""
    run: List[str] = []
    for line in _truncate_at_end_marker(text).splitlines():
        if _LIST_ITEM_RE.match(line.strip()):
            run.append(line)
            continue
        if len(run) >= 2:
            break
        run = []
    if len(run) >= 2:
        return "\n".join(run).strip()
    return None


def extract_plan(text: str) -> str:
    """Extract a plan from response text.

    Tries a marker phrase first, then a numbered or bulleted list, and falls back
    to the whole text. Text with neither extracts to itself.
    """
    if not text or not text.strip():
        return ""
    plan = _extract_after_marker(text)
    if plan is not None:
        return plan
    return _extract_list_run(text) or text
