"""trigger.py – Decide whether a Slack message asks for enrichment

A message qualifies when it contains a LinkedIn *people profile* URL **and**
the configured trigger keyword.  Both checks are case-insensitive; the keyword
is matched as a plain substring (``"enrichment"`` contains ``"enrich"``).

Example
-------
>>> detect("please enrich https://linkedin.com/in/jane-doe", "enrich")
TriggerMatch(url='https://linkedin.com/in/jane-doe', qualifies=True)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import re

__all__ = [
    "LINKEDIN_PROFILE_RE",
    "TriggerMatch",
    "detect",
]

# People profiles only; company pages (/company/) are not matched.
LINKEDIN_PROFILE_RE = re.compile(
    r"https?://(?:www\.)?linkedin\.com/in/[A-Za-z0-9\-_%]+/?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TriggerMatch:
    """Outcome of :pyfunc:`detect`; ``url`` is ``None`` when no profile URL was found."""

    url: Optional[str]
    qualifies: bool


def detect(text: Optional[str], keyword: str) -> TriggerMatch:
    """Return the first profile URL in *text* and whether the message qualifies.

    The URL is returned verbatim (original casing).  When no URL is present the
    keyword is not inspected at all.
    """

    if not text:
        return TriggerMatch(url=None, qualifies=False)

    match = LINKEDIN_PROFILE_RE.search(text)
    if match is None:
        return TriggerMatch(url=None, qualifies=False)

    url = match.group(0)
    # An empty keyword is contained in every string: any profile URL qualifies.
    qualifies = (keyword or "").lower() in text.lower()
    return TriggerMatch(url=url, qualifies=qualifies)
