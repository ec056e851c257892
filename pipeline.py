"""Two-phase mention tally pipeline.

Phase 1 (extraction and validation): classify every non-root post, pull
candidates out of content posts, collect the unique candidate set across
the whole corpus and resolve each candidate exactly once through the
validation cache. Resolution may run concurrently. The result is the
direct label map.

Phase 2 (inheritance and aggregation) starts only once Phase 1 has fully
finished: reactions inherit from their nearest directly labeled ancestor,
then all labels are aggregated into ranked mention counts.

No single post or candidate can fail the run. Only an empty corpus or
one without a root is fatal, and those are raised while loading it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from aggregation import MentionAggregate
from candidate_extractor import CandidateExtractor
from canonicalizer import Canonicalizer
from config import Config
from corpus import Corpus
from error_handling import IncompleteRunError, with_enhanced_recovery
from models import MentionCount, Post, PostState, ValidationEntry
from monitoring import StageTimings, timed_stage
from reaction_classifier import ReactionClassifier
from thread_inheritance import InheritanceOutcome, ThreadInheritance
from validation_cache import ValidationCache

logger = logging.getLogger(__name__)


@dataclass
class PipelineDiagnostics:
    """What happened during one run."""

    posts_total: int = 0
    reactions: int = 0
    content_posts: int = 0
    candidates_total: int = 0
    unique_candidates: int = 0
    cache_hits: int = 0
    fresh_validations: int = 0
    failures: int = 0
    dropped_corrupt: int = 0
    inherited: int = 0
    no_parent_title: int = 0
    orphan_parents: int = 0
    cycle_guards: int = 0
    timings: StageTimings = field(default_factory=StageTimings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "posts_total": self.posts_total,
            "reactions": self.reactions,
            "content_posts": self.content_posts,
            "candidates_total": self.candidates_total,
            "unique_candidates": self.unique_candidates,
            "cache_hits": self.cache_hits,
            "fresh_validations": self.fresh_validations,
            "failures": self.failures,
            "dropped_corrupt": self.dropped_corrupt,
            "inherited": self.inherited,
            "no_parent_title": self.no_parent_title,
            "orphan_parents": self.orphan_parents,
            "cycle_guards": self.cycle_guards,
            "durations_ms": self.timings.to_dict(),
        }


@dataclass
class PipelineResult:
    """Complete output of one run."""

    label_of: dict[str, list[str]]
    direct_label_of: dict[str, list[str]]
    candidates_of: dict[str, list[str]]
    post_state: dict[str, PostState]
    aggregate: MentionAggregate
    diagnostics: PipelineDiagnostics

    @property
    def mention_counts(self) -> list[MentionCount]:
        return self.aggregate.mention_counts

    @property
    def uncategorized(self) -> list[Post]:
        return self.aggregate.uncategorized

    def to_dict(self) -> dict[str, Any]:
        return {
            "label_of": self.label_of,
            "mention_counts": [mc.to_dict() for mc in self.mention_counts],
            "uncategorized": [p.uri for p in self.uncategorized],
            "post_state": {uri: state.value for uri, state in self.post_state.items()},
            "diagnostics": self.diagnostics.to_dict(),
        }


@dataclass
class _PhaseOne:
    reactions: set[str]
    candidates_of: dict[str, list[str]]
    resolved: dict[str, ValidationEntry]
    direct_label_of: dict[str, list[str]]


class PipelineOrchestrator:
    """Runs the two-phase pipeline over one corpus with one cache."""

    def __init__(
        self,
        cache: ValidationCache,
        classifier: Optional[ReactionClassifier] = None,
        extractor: Optional[CandidateExtractor] = None,
        canonicalizer: Optional[Canonicalizer] = None,
        max_workers: Optional[int] = None,
        inherit_agreement_only: Optional[bool] = None,
    ):
        self.cache = cache
        self.classifier = classifier or ReactionClassifier()
        self.extractor = extractor or CandidateExtractor()
        self.canonicalizer = canonicalizer or Canonicalizer()
        self.max_workers = max(1, max_workers or Config.VALIDATION_CONCURRENCY)
        self.inherit_agreement_only = (
            Config.INHERIT_AGREEMENT_ONLY
            if inherit_agreement_only is None
            else inherit_agreement_only
        )

    def run(self, corpus: Corpus) -> PipelineResult:
        """Run both phases and return the full label map and aggregate."""
        diagnostics = PipelineDiagnostics(posts_total=len(corpus))
        stats_before = self.cache.stats.to_dict()

        with timed_stage("phase1", diagnostics.timings, logger):
            phase_one = self._run_phase_one(corpus, diagnostics)

        stats_after = self.cache.stats.to_dict()
        diagnostics.cache_hits = stats_after["hits"] - stats_before["hits"]
        diagnostics.fresh_validations = (
            stats_after["fresh_validations"] - stats_before["fresh_validations"]
        )
        diagnostics.failures = stats_after["failures"] - stats_before["failures"]
        diagnostics.dropped_corrupt = stats_after["dropped_corrupt"]

        # Barrier: Phase 2 needs the complete direct label map
        with timed_stage("phase2", diagnostics.timings, logger):
            label_of, post_state = self._run_phase_two(corpus, phase_one, diagnostics)
            aggregate = MentionAggregate(label_of, corpus)

        logger.info(
            "✅ Tallied %d posts: %d titles, %d uncategorized "
            "(hits=%d, fresh=%d, failures=%d)",
            diagnostics.posts_total,
            len(aggregate.mention_counts),
            len(aggregate.uncategorized),
            diagnostics.cache_hits,
            diagnostics.fresh_validations,
            diagnostics.failures,
        )

        return PipelineResult(
            label_of=label_of,
            direct_label_of=phase_one.direct_label_of,
            candidates_of=phase_one.candidates_of,
            post_state=post_state,
            aggregate=aggregate,
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def _run_phase_one(
        self, corpus: Corpus, diagnostics: PipelineDiagnostics
    ) -> _PhaseOne:
        reactions: set[str] = set()
        candidates_of: dict[str, list[str]] = {}

        for post in corpus.non_root_posts():
            if self.classifier.is_reaction(post.search_text):
                reactions.add(post.uri)
                continue
            candidates_of[post.uri] = self.extractor.extract_candidates(post.search_text)

        diagnostics.reactions = len(reactions)
        diagnostics.content_posts = len(candidates_of)
        diagnostics.candidates_total = sum(len(c) for c in candidates_of.values())

        unique = list(
            dict.fromkeys(c for cands in candidates_of.values() for c in cands)
        )
        diagnostics.unique_candidates = len(unique)
        logger.info(
            "Phase 1: %d reactions, %d content posts, %d unique candidates",
            len(reactions),
            len(candidates_of),
            len(unique),
        )

        self.cache.prepare(unique, corpus.root.text)
        resolved = self._resolve_all(unique)

        direct_label_of = {
            uri: self.canonicalizer.labels_for(cands, resolved)
            for uri, cands in candidates_of.items()
        }
        return _PhaseOne(reactions, candidates_of, resolved, direct_label_of)

    def _resolve_all(self, candidates: list[str]) -> dict[str, ValidationEntry]:
        """Resolve each unique candidate once, up to ``max_workers`` at a time."""
        if not candidates:
            return {}
        if self.max_workers == 1 or len(candidates) == 1:
            entries = [self.cache.resolve(c) for c in candidates]
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="validate"
            ) as executor:
                entries = list(executor.map(self.cache.resolve, candidates))
        return dict(zip(candidates, entries))

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    def _run_phase_two(
        self,
        corpus: Corpus,
        phase_one: _PhaseOne,
        diagnostics: PipelineDiagnostics,
    ) -> tuple[dict[str, list[str]], dict[str, PostState]]:
        inheritance = ThreadInheritance(corpus, phase_one.direct_label_of)
        label_of: dict[str, list[str]] = {}
        post_state: dict[str, PostState] = {}

        for post in corpus:
            if corpus.is_root(post.uri):
                label_of[post.uri] = []
                post_state[post.uri] = PostState.ROOT
                continue

            if post.uri not in phase_one.reactions:
                labels = phase_one.direct_label_of.get(post.uri, [])
                label_of[post.uri] = list(labels)
                post_state[post.uri] = (
                    PostState.VALIDATED if labels else PostState.REJECTED
                )
                continue

            if self.inherit_agreement_only and not self.classifier.is_agreement(
                post.search_text
            ):
                label_of[post.uri] = []
                post_state[post.uri] = PostState.NO_PARENT_TITLE
                diagnostics.no_parent_title += 1
                continue

            result = inheritance.resolve(post)
            label_of[post.uri] = list(result.labels)
            if result.outcome is InheritanceOutcome.INHERITED:
                post_state[post.uri] = PostState.INHERITED
                diagnostics.inherited += 1
                continue

            post_state[post.uri] = PostState.NO_PARENT_TITLE
            diagnostics.no_parent_title += 1
            if result.outcome is InheritanceOutcome.ORPHAN_PARENT:
                diagnostics.orphan_parents += 1
            elif result.outcome is InheritanceOutcome.CYCLE_GUARD:
                diagnostics.cycle_guards += 1

        return label_of, post_state


def run_pipeline(
    corpus: Corpus, cache: ValidationCache, **kwargs: Any
) -> PipelineResult:
    """Convenience wrapper: build an orchestrator and run it once."""
    return PipelineOrchestrator(cache, **kwargs).run(corpus)


def run_with_retries(
    orchestrator: PipelineOrchestrator,
    corpus: Corpus,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> PipelineResult:
    """
    Re-run the pipeline while some candidates fail to validate.

    Verdicts from earlier attempts are already cached, so each retry only
    sends the failed keys back to the authority. The last attempt's result
    is returned even when failures remain.
    """
    attempts = max_attempts or Config.RUN_RETRY_ATTEMPTS
    delay = Config.RUN_RETRY_DELAY_SECONDS if base_delay is None else base_delay

    @with_enhanced_recovery(
        max_attempts=attempts,
        base_delay=delay,
        retryable_exceptions=(IncompleteRunError,),
    )
    def attempt() -> PipelineResult:
        result = orchestrator.run(corpus)
        failures = result.diagnostics.failures
        if failures:
            raise IncompleteRunError(
                f"{failures} candidate(s) could not be validated",
                result=result,
                failures=failures,
            )
        return result

    try:
        return attempt()
    except IncompleteRunError as e:
        logger.warning(
            "⚠️ Keeping result with %d unvalidated candidate(s) after %d attempt(s)",
            e.failures,
            attempts,
        )
        return e.result
