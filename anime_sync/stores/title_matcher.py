"""Resolve a local catalog title to an AniList media id.

Providers name shows differently (regional titles, season suffixes), and
AniList search is popularity-biased, so every hit is validated against the
original title before it is accepted.
"""

import logging
import re
from typing import Dict, List, Optional

from ..core.errors import GraphQLQueryError
from ..core.graphql import GraphQLClient
from ..core.normalizers import norm_candidate
from ..models.records import TitleCandidate

log = logging.getLogger(__name__)

MIN_COMMON_TOKENS = 2
MIN_TOKEN_OVERLAP = 0.7
FUZZY_PER_PAGE = 10
FUZZY_MAX_PAGES = 2

_MEDIA_FIELDS = """
    id
    title { romaji english native }
    synonyms
    format
    episodes
    status
"""

SINGLE_QUERY = """
query ($search: String) {
  Media(search: $search, type: ANIME, isAdult: false, sort: [POPULARITY_DESC]) {%s}
}""" % _MEDIA_FIELDS

FUZZY_QUERY = """
query ($search: String, $page: Int, $per: Int) {
  Page(page: $page, perPage: $per) {
    pageInfo { hasNextPage }
    media(search: $search, type: ANIME, isAdult: false, sort: [POPULARITY_DESC]) {%s}
  }
}""" % _MEDIA_FIELDS

_SUFFIX_RE = re.compile(
    r"\s*\((?:TV|Movie|OVA|ONA|Special)\)"
    r"|\s+Season\s+\d+"
    r"|\s+\d+(?:st|nd|rd|th)\s+Season",
    re.IGNORECASE,
)
_TRAILING_DIGITS_RE = re.compile(r"\s*\d+\s*$")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9\s]")


def title_variants(title: str) -> List[str]:
    """Ordered, de-duplicated, non-empty search variants for `title`."""
    candidates = [title]

    stripped = _SUFFIX_RE.sub("", title)
    if stripped != title:
        candidates.append(stripped)

    candidates.append(title.replace(" ", ""))

    words = title.split()
    if words and len(words[0]) > 2:
        candidates.append(words[0])

    candidates.append(title.split(":", 1)[0])
    candidates.append(title.split("-", 1)[0])

    no_digits = _TRAILING_DIGITS_RE.sub("", title)
    if no_digits != title:
        candidates.append(no_digits)

    alnum = _NON_ALNUM_RE.sub("", title)
    if alnum != title:
        candidates.append(alnum)

    out: List[str] = []
    for c in candidates:
        c = c.strip()
        if c and c not in out:
            out.append(c)
    return out


def _normalize(s: str) -> str:
    return s.lower().strip()


def is_valid_match(candidate: TitleCandidate, original_title: str) -> bool:
    """Accept when a title contains (or is contained in) the query, or enough words overlap."""
    query = _normalize(original_title)
    titles = [_normalize(t) for t in candidate.all_titles()]
    titles = [t for t in titles if t]

    for t in titles:
        if t in query or query in t:
            return True

    query_words = set(query.split())
    for t in titles:
        words = set(t.split())
        common = query_words & words
        shorter = min(len(query_words), len(words))
        if len(common) >= MIN_COMMON_TOKENS and len(common) >= MIN_TOKEN_OVERLAP * shorter:
            return True
    return False


class TitleMatcher:
    def __init__(self, client: GraphQLClient):
        self.client = client
        self._matches: Dict[str, Optional[int]] = {}

    def _search_single(self, variant: str) -> Optional[TitleCandidate]:
        try:
            data = self.client.execute(SINGLE_QUERY, {"search": variant})
        except GraphQLQueryError as e:
            # AniList answers a search with no hit with a "Not Found" error
            if not e.is_not_found:
                raise
            log.debug("No AniList hit for %r: %s", variant, e)
            return None
        media = data.get("Media")
        return norm_candidate(media) if media else None

    def _search_fuzzy(self, title: str) -> Optional[int]:
        for page in range(1, FUZZY_MAX_PAGES + 1):
            try:
                data = self.client.execute(FUZZY_QUERY, {"search": title, "page": page, "per": FUZZY_PER_PAGE})
            except GraphQLQueryError as e:
                if not e.is_not_found:
                    raise
                log.debug("Fuzzy search found nothing for %r: %s", title, e)
                return None
            page_data = data.get("Page") or {}
            for m in page_data.get("media") or []:
                cand = norm_candidate(m) if m else None
                if cand and is_valid_match(cand, title):
                    log.info("Matched %r to AniList %d via fuzzy search", title, cand.remote_id)
                    return cand.remote_id
            if not (page_data.get("pageInfo") or {}).get("hasNextPage"):
                break
        return None

    def match(self, title: str) -> Optional[int]:
        if title in self._matches:
            return self._matches[title]

        for variant in title_variants(title):
            cand = self._search_single(variant)
            if cand is None:
                continue
            if is_valid_match(cand, title):
                log.info("Matched %r to AniList %d via variant %r", title, cand.remote_id, variant)
                self._matches[title] = cand.remote_id
                return cand.remote_id
            log.debug("Rejected AniList %d for variant %r", cand.remote_id, variant)

        found = self._search_fuzzy(title)
        if found is None:
            log.info("No validated AniList match for %r", title)
        self._matches[title] = found
        return found

    def clear(self) -> None:
        self._matches.clear()
