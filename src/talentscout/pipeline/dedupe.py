"""Cross-source deduplication into canonical profiles."""

import logging
from collections.abc import Iterable
from datetime import datetime

from rapidfuzz import fuzz

from talentscout.core.models import (
    CanonicalProfile,
    DeduplicationMetrics,
    MergeProvenance,
    RawCandidateRecord,
    SourceReference,
)
from talentscout.utils.text import dedupe_terms, location_tokens, normalize_location, normalize_name
from talentscout.utils.url import linkedin_slug_from_url

logger = logging.getLogger(__name__)

# Length tolerance for fuzzy matching pre-filter (fraction of name length)
LENGTH_TOLERANCE = 0.3

REASON_GITHUB = "shared github username"
REASON_LINKEDIN = "shared linkedin profile"
REASON_EMAIL = "shared email"
REASON_RECORD = "same platform record"
REASON_NAME_LOCATION = "name and location match"
REASON_FUZZY = "fuzzy name match"

# Text fields resolved by precedence rather than max/union
TEXT_FIELDS = (
    "name",
    "title",
    "location",
    "avatar_url",
    "email",
    "summary",
    "profile_url",
    "github_username",
    "linkedin_url",
    "stackoverflow_id",
    "website_url",
)
NUMERIC_FIELDS = ("followers", "stars", "repo_count", "reputation")


class _UnionFind:
    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, i: int, j: int) -> bool:
        """Join two sets; the lower index stays root. False if already joined."""
        ri, rj = self.find(i), self.find(j)
        if ri == rj:
            return False
        if rj < ri:
            ri, rj = rj, ri
        self.parent[rj] = ri
        return True


def primary_keys(record: RawCandidateRecord) -> list[tuple[str, str]]:
    """Exact-match identity keys with the merge reason each one implies."""
    keys: list[tuple[str, str]] = []
    if record.github_username:
        keys.append((f"github:{record.github_username.lower()}", REASON_GITHUB))
    slug = linkedin_slug_from_url(record.linkedin_url)
    if slug:
        keys.append((f"linkedin:{slug}", REASON_LINKEDIN))
    if record.email:
        keys.append((f"email:{record.email.strip().lower()}", REASON_EMAIL))
    # Last, so a record key equal to an identity key reports the identity
    keys.append((f"{record.source}:{record.platform_id}".lower(), REASON_RECORD))
    return keys


def secondary_key(record: RawCandidateRecord) -> str | None:
    """Normalized name + location, or None when either is missing."""
    name = normalize_name(record.name)
    location = normalize_location(record.location)
    if not name or not location:
        return None
    return f"{name}|{location}"


def _locations_compatible(a: set[str], b: set[str]) -> bool:
    # Both known: must overlap. One known: compatible. Neither: too weak to merge.
    if a and b:
        return bool(a & b)
    return bool(a or b)


def _activity_key(record: RawCandidateRecord, index: int) -> tuple[float, int]:
    ts = record.last_active.timestamp() if record.last_active else float("-inf")
    return (-ts, index)


class DedupeEngine:
    """Collapse raw records that denote the same person.

    Records sharing a platform identity (GitHub login, LinkedIn slug,
    email, or the same platform record) always merge. Records without a
    shared identity merge on normalized name + location, then on a fuzzy
    name match with compatible locations.
    """

    def __init__(self, name_threshold: float = 0.9):
        self.name_threshold = name_threshold

    def deduplicate(
        self,
        records: Iterable[RawCandidateRecord],
    ) -> tuple[list[CanonicalProfile], DeduplicationMetrics]:
        source = list(records)
        if not source:
            return [], DeduplicationMetrics()

        uf = _UnionFind(len(source))
        merges: list[tuple[int, int, str]] = []

        def join(i: int, j: int, reason: str) -> None:
            if uf.union(i, j):
                merges.append((i, j, reason))

        # 1. Primary keys
        owners: dict[str, int] = {}
        for idx, record in enumerate(source):
            for key, reason in primary_keys(record):
                if key in owners:
                    join(owners[key], idx, reason)
                else:
                    owners[key] = idx

        # 2. Secondary key
        secondary: dict[str, int] = {}
        for idx, record in enumerate(source):
            key = secondary_key(record)
            if key is None:
                continue
            if key in secondary:
                join(secondary[key], idx, REASON_NAME_LOCATION)
            else:
                secondary[key] = idx

        # 3. Fuzzy names across the remaining groups
        self._fuzzy_pass(source, uf, join)

        groups: dict[int, list[int]] = {}
        for idx in range(len(source)):
            groups.setdefault(uf.find(idx), []).append(idx)

        reasons_by_root: dict[int, list[str]] = {}
        for i, _, reason in merges:
            reasons_by_root.setdefault(uf.find(i), []).append(reason)

        profiles = [
            self._merge_group(source, members, reasons_by_root.get(root, []))
            for root, members in sorted(groups.items())
        ]

        original = len(source)
        removed = original - len(profiles)
        metrics = DeduplicationMetrics(
            original_count=original,
            deduplicated_count=len(profiles),
            duplicates_removed=removed,
            merge_decisions=len(merges),
            deduplication_rate=round(removed / original * 100, 2),
        )
        logger.info("Deduplicated %d records into %d profiles", original, len(profiles))
        return profiles, metrics

    def _fuzzy_pass(self, source: list[RawCandidateRecord], uf: _UnionFind, join) -> None:
        """Compare named records pairwise, skipping pairs of very different length.

        Location compatibility is judged on whole groups, so a record
        without a location cannot bridge people from different places.
        """
        group_locations: dict[int, set[str]] = {}
        named = []
        for idx, record in enumerate(source):
            tokens = location_tokens(record.location)
            group_locations.setdefault(uf.find(idx), set()).update(tokens)
            name = normalize_name(record.name)
            if name:
                named.append((idx, name))

        threshold = self.name_threshold * 100
        for pos, (i, name_i) in enumerate(named):
            min_len = int(len(name_i) * (1 - LENGTH_TOLERANCE))
            max_len = int(len(name_i) * (1 + LENGTH_TOLERANCE))
            for j, name_j in named[pos + 1:]:
                root_i, root_j = uf.find(i), uf.find(j)
                if root_i == root_j:
                    continue
                loc_i, loc_j = group_locations[root_i], group_locations[root_j]
                if not _locations_compatible(loc_i, loc_j):
                    continue
                if name_i == name_j:
                    reason = REASON_NAME_LOCATION if loc_i and loc_j else REASON_FUZZY
                elif min_len <= len(name_j) <= max_len and fuzz.token_sort_ratio(name_i, name_j) >= threshold:
                    reason = REASON_FUZZY
                else:
                    continue
                join(i, j, reason)
                group_locations[uf.find(i)] = loc_i | loc_j

    def _merge_group(
        self,
        source: list[RawCandidateRecord],
        members: list[int],
        reasons: list[str],
    ) -> CanonicalProfile:
        records = [source[i] for i in members]
        by_precedence = [source[i] for i in sorted(members, key=lambda i: _activity_key(source[i], i))]

        fields: dict[str, object] = {}
        for name in TEXT_FIELDS:
            fields[name] = next((getattr(r, name) for r in by_precedence if getattr(r, name)), None)
        for name in NUMERIC_FIELDS:
            fields[name] = max(getattr(r, name) for r in records)

        years = [r.experience_years for r in records if r.experience_years is not None]
        activity: list[datetime] = [r.last_active for r in records if r.last_active is not None]

        refs: list[SourceReference] = []
        seen_refs: set[tuple[str, str]] = set()
        for r in records:
            key = (r.source, r.platform_id)
            if key not in seen_refs:
                seen_refs.add(key)
                refs.append(SourceReference(platform=r.source, platform_id=r.platform_id, url=r.profile_url))

        return CanonicalProfile(
            id=records[0].source_key,
            skills=dedupe_terms(skill for r in records for skill in r.skills),
            experience_years=max(years) if years else None,
            last_active=max(activity) if activity else None,
            sources=refs,
            provenance=MergeProvenance(
                record_count=len(records),
                record_keys=[r.source_key for r in records],
                reasons=reasons,
            ),
            **fields,
        )


__all__ = ["DedupeEngine", "primary_keys", "secondary_key"]
