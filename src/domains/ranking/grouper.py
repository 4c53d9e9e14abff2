# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Partitioning of the scored population into ranking scopes.

Each scope type is an independent partition of the same population:
- School: one group per school_id
- District: one group per district_id
- Global: a single group holding every directory student

Every group is ranked by its own Ranker invocation, so a student's school
rank and district rank come from unrelated runs over different subsets.
Students lacking a scope attribute are left out of that scope type only,
and each omission is recorded as a ScopeExclusion.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from src.domains.ranking.models import (
    GLOBAL_SCOPE_ID,
    ExclusionReason,
    ScopeExclusion,
    ScopeKey,
    ScopeType,
    ScoredStudent,
    StudentScope,
    StudentStanding,
)
from src.domains.ranking.ranker import RankingResult, rank_scope

logger = logging.getLogger(__name__)


class ScopeGroups:
    """Scored students partitioned by scope.

    Attributes:
        groups: Scored students per scope key.
        exclusions: Students left out of a scope type, with reasons.
    """

    def __init__(
        self,
        groups: Mapping[ScopeKey, list[ScoredStudent]],
        exclusions: list[ScopeExclusion],
    ) -> None:
        self.groups = dict(groups)
        self.exclusions = list(exclusions)

    def keys(self, scope_type: ScopeType | None = None) -> list[ScopeKey]:
        """Get the scope keys, optionally filtered by type, in stable order."""
        keys = [k for k in self.groups if scope_type is None or k.scope_type == scope_type]
        return sorted(keys, key=lambda k: (k.scope_type.value, k.scope_id))


class PopulationRanking:
    """Rankings of every scope for one population run.

    Attributes:
        rankings: RankingResult per scope key.
        exclusions: Students left out of a scope type, with reasons.
        directory: Scope attributes per student id.
    """

    def __init__(
        self,
        rankings: Mapping[ScopeKey, RankingResult],
        exclusions: list[ScopeExclusion],
        directory: Mapping[str, StudentScope],
    ) -> None:
        self.rankings = dict(rankings)
        self.exclusions = list(exclusions)
        self.directory = dict(directory)

    def for_scope(self, scope: ScopeKey) -> RankingResult:
        """Get a scope's ranking; unknown scopes give an empty ranking."""
        result = self.rankings.get(scope)
        return result if result is not None else RankingResult((), scope=scope)

    def school(self, school_id: str) -> RankingResult:
        return self.for_scope(ScopeKey(scope_type=ScopeType.SCHOOL, scope_id=school_id))

    def district(self, district_id: str) -> RankingResult:
        return self.for_scope(ScopeKey(scope_type=ScopeType.DISTRICT, scope_id=district_id))

    def global_ranking(self) -> RankingResult:
        return self.for_scope(ScopeKey(scope_type=ScopeType.GLOBAL, scope_id=GLOBAL_SCOPE_ID))

    def exclusions_for(self, student_id: str) -> list[ScopeExclusion]:
        """Get the scope exclusions recorded for one student."""
        return [e for e in self.exclusions if e.student_id == student_id]

    def standing(self, student_id: str) -> StudentStanding | None:
        """Collect a student's ranks across scope types.

        Returns:
            The standing, or None if the student was not ranked anywhere.
        """
        scope = self.directory.get(student_id)
        if scope is None:
            return None

        global_entry = self.global_ranking().get(student_id)
        school_entry = self.school(scope.school_id).get(student_id) if scope.school_id else None
        district_entry = (
            self.district(scope.district_id).get(student_id) if scope.district_id else None
        )

        entry = global_entry or school_entry or district_entry
        if entry is None:
            return None

        return StudentStanding(
            student_id=student_id,
            metrics=entry.metrics,
            total_score=entry.total_score,
            school_id=scope.school_id,
            district_id=scope.district_id,
            school_rank=school_entry.rank if school_entry else None,
            district_rank=district_entry.rank if district_entry else None,
            global_rank=global_entry.rank if global_entry else None,
        )

    def standings(self) -> list[StudentStanding]:
        """Get every ranked student's standing, in global rank order."""
        ordered = [entry.student_id for entry in self.global_ranking()]
        ordered += sorted(sid for sid in self.directory if sid not in self.global_ranking())
        return [s for s in (self.standing(sid) for sid in ordered) if s is not None]


class ScopeGrouper:
    """Partitions a scored population and ranks each partition.

    Attributes:
        max_workers: Threads used to rank scopes; 1 ranks sequentially.
    """

    def __init__(self, max_workers: int = 1) -> None:
        self.max_workers = max_workers

    def group(
        self,
        population: Iterable[ScoredStudent],
        directory: Mapping[str, StudentScope],
        known_scopes: Iterable[ScopeKey] = (),
    ) -> ScopeGroups:
        """Partition the population into school, district, and global groups.

        Args:
            population: Scored students.
            directory: Scope attributes per student id.
            known_scopes: Scopes that must appear even when empty.

        Returns:
            ScopeGroups with per-scope members and exclusions.
        """
        groups: dict[ScopeKey, list[ScoredStudent]] = defaultdict(list)
        exclusions: list[ScopeExclusion] = []
        global_key = ScopeKey(scope_type=ScopeType.GLOBAL, scope_id=GLOBAL_SCOPE_ID)

        for key in known_scopes:
            groups.setdefault(key, [])
        groups.setdefault(global_key, [])

        for student in population:
            scope = directory.get(student.student_id)
            if scope is None:
                exclusions.extend(
                    ScopeExclusion(
                        student_id=student.student_id,
                        scope_type=scope_type,
                        reason=ExclusionReason.NOT_IN_DIRECTORY,
                    )
                    for scope_type in ScopeType
                )
                continue

            groups[global_key].append(student)

            if scope.school_id:
                groups[ScopeKey(scope_type=ScopeType.SCHOOL, scope_id=scope.school_id)].append(student)
            else:
                exclusions.append(
                    ScopeExclusion(
                        student_id=student.student_id,
                        scope_type=ScopeType.SCHOOL,
                        reason=ExclusionReason.MISSING_SCHOOL,
                    )
                )

            if scope.district_id:
                groups[ScopeKey(scope_type=ScopeType.DISTRICT, scope_id=scope.district_id)].append(student)
            else:
                exclusions.append(
                    ScopeExclusion(
                        student_id=student.student_id,
                        scope_type=ScopeType.DISTRICT,
                        reason=ExclusionReason.MISSING_DISTRICT,
                    )
                )

        if exclusions:
            logger.info(
                "Scope exclusions: %d (students=%d)",
                len(exclusions),
                len({e.student_id for e in exclusions}),
            )

        return ScopeGroups(groups, exclusions)

    def rank_groups(self, groups: ScopeGroups) -> dict[ScopeKey, RankingResult]:
        """Rank every group independently.

        With max_workers > 1 the groups are ranked on a thread pool; each
        worker returns its own result and the results are merged after all
        of them complete.
        """
        keys = groups.keys()

        if self.max_workers <= 1 or len(keys) <= 1:
            results = [rank_scope(groups.groups[key], scope=key) for key in keys]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(lambda key: rank_scope(groups.groups[key], scope=key), keys)
                )

        return dict(zip(keys, results))

    def rank_population(
        self,
        population: Iterable[ScoredStudent],
        directory: Mapping[str, StudentScope],
        known_scopes: Iterable[ScopeKey] = (),
    ) -> PopulationRanking:
        """Group the population and rank every scope.

        Args:
            population: Scored students.
            directory: Scope attributes per student id.
            known_scopes: Scopes that must appear even when empty.

        Returns:
            PopulationRanking over all scopes.
        """
        groups = self.group(population, directory, known_scopes)
        rankings = self.rank_groups(groups)

        logger.info(
            "Ranked scopes: schools=%d, districts=%d, students=%d",
            len(groups.keys(ScopeType.SCHOOL)),
            len(groups.keys(ScopeType.DISTRICT)),
            sum(len(r) for k, r in rankings.items() if k.scope_type == ScopeType.GLOBAL),
        )

        return PopulationRanking(rankings, groups.exclusions, directory)
