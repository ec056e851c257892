"""Property-based checks over randomly generated inputs.

Complements the example-based tests with invariants that must hold for
any input:

- Key normalization is idempotent and ignores case and spacing
- Inheritance walks terminate on arbitrary parent graphs, cycles included
- Ranked counts always add up to the labeled (post, title) pairs
- Re-running the pipeline on a warm cache changes nothing
- Extraction never returns duplicates

Example:
    Run with: python property_tests.py
"""

from __future__ import annotations

import random
import string
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from test_framework import TestSuite

SEED = 1337

TITLE_POOL = [
    "Die Hard",
    "The Godfather",
    "Point Break",
    "Heat",
    "Jurassic Park",
    "Blade Runner",
    "Groundhog Day",
]
REACTION_POOL = ["yes!!", "lol", "this", "🔥", "same", "💯", "exactly"]
FILLER_POOL = ["honestly", "every time", "no contest", "and also", "with my dad"]


@dataclass
class PropertyTestResult:
    """Result of a property test run."""

    name: str
    passed: bool
    examples_tested: int
    failing_example: Any | None = None
    error: str | None = None


def _run_property(
    name: str, n_examples: int, check: Callable[[random.Random], Any]
) -> PropertyTestResult:
    """Run ``check`` n times; it returns None on success or the failing example."""
    rng = random.Random(SEED)
    for i in range(n_examples):
        try:
            failing = check(rng)
        except Exception as e:
            return PropertyTestResult(name, False, i + 1, error=f"{type(e).__name__}: {e}")
        if failing is not None:
            return PropertyTestResult(
                name, False, i + 1, failing_example=failing, error="property violated"
            )
    return PropertyTestResult(name, True, n_examples)


# =============================================================================
# Generators
# =============================================================================


def _random_text(rng: random.Random, max_len: int = 40) -> str:
    alphabet = string.ascii_letters + string.digits + " '!?.,:-&\t"
    return "".join(rng.choices(alphabet, k=rng.randint(0, max_len)))


def _random_reply(rng: random.Random) -> str:
    kind = rng.random()
    if kind < 0.35:
        return rng.choice(REACTION_POOL)
    if kind < 0.8:
        title = rng.choice(TITLE_POOL)
        return f"{title}, {rng.choice(FILLER_POOL)}" if rng.random() < 0.5 else title
    return rng.choice(FILLER_POOL)


def _random_thread(rng: random.Random, max_posts: int = 25):
    """Random thread: a root plus replies whose parents may be missing or cyclic."""
    from corpus import Corpus
    from test_framework import ROOT_URI, make_post

    n = rng.randint(1, max_posts)
    uris = [f"p{i}" for i in range(n)]
    posts = [make_post(ROOT_URI, "What's your favorite movie?", parent_uri=None, is_root=True)]
    for uri in uris:
        roll = rng.random()
        if roll < 0.1:
            parent = "at://deleted"
        elif roll < 0.4:
            parent = ROOT_URI
        else:
            parent = rng.choice(uris)
        posts.append(make_post(uri, _random_reply(rng), parent_uri=parent))
    return Corpus.from_posts(posts)


# =============================================================================
# Properties
# =============================================================================


def check_normalize_key_idempotent(n_examples: int = 100) -> PropertyTestResult:
    """normalize_key(normalize_key(x)) == normalize_key(x)."""
    from text_utils import normalize_key

    def check(rng: random.Random) -> Any:
        text = _random_text(rng)
        once = normalize_key(text)
        return None if normalize_key(once) == once else text

    return _run_property("normalize_key idempotent", n_examples, check)


def check_normalize_key_ignores_case_and_spacing(
    n_examples: int = 100,
) -> PropertyTestResult:
    """Case and whitespace runs never change the key."""
    from text_utils import normalize_key

    def check(rng: random.Random) -> Any:
        words = [
            "".join(rng.choices(string.ascii_letters, k=rng.randint(1, 8)))
            for _ in range(rng.randint(1, 5))
        ]
        spaced = (" " * rng.randint(1, 3)).join(words)
        variants = {normalize_key(spaced.upper()), normalize_key(" ".join(words).lower())}
        return None if len(variants) == 1 else spaced

    return _run_property("normalize_key case/spacing", n_examples, check)


def check_inheritance_terminates(n_examples: int = 100) -> PropertyTestResult:
    """Every walk ends within the corpus size and only inherits real labels."""
    from test_framework import suppress_logging
    from thread_inheritance import InheritanceOutcome, resolve_inheritance

    def check(rng: random.Random) -> Any:
        corpus = _random_thread(rng)
        label_of = {
            post.uri: [rng.choice(TITLE_POOL)]
            for post in corpus.non_root_posts()
            if rng.random() < 0.3
        }
        with suppress_logging():
            for post in corpus:
                result = resolve_inheritance(post, label_of, corpus)
                if result.depth > len(corpus):
                    return (post.uri, result)
                if result.outcome is InheritanceOutcome.INHERITED:
                    if list(result.labels) != label_of.get(result.source_uri):
                        return (post.uri, result)
                elif result.labels:
                    return (post.uri, result)
        return None

    return _run_property("inheritance terminates", n_examples, check)


def check_ranking_adds_up(n_examples: int = 100) -> PropertyTestResult:
    """Counts sum to the distinct (post, title) pairs and come out sorted."""
    from aggregation import rank_mentions

    def check(rng: random.Random) -> Any:
        corpus = _random_thread(rng)
        label_of = {
            post.uri: rng.sample(TITLE_POOL, k=rng.randint(0, 2))
            for post in corpus.non_root_posts()
        }
        counts = rank_mentions(label_of, corpus)
        expected = sum(len(set(labels)) for labels in label_of.values())
        if sum(mc.count for mc in counts) != expected:
            return label_of
        keys = [(-mc.count, mc.mention) for mc in counts]
        return None if keys == sorted(keys) else label_of

    return _run_property("ranking adds up", n_examples, check)


def check_pipeline_rerun_is_stable(n_examples: int = 30) -> PropertyTestResult:
    """A second run on the same cache gives the same labels with no fresh calls."""
    from pipeline import run_pipeline
    from test_framework import RecordingAuthority, make_cache, suppress_logging

    titles = {t: t for t in TITLE_POOL}

    def check(rng: random.Random) -> Any:
        corpus = _random_thread(rng)
        authority = RecordingAuthority(titles)
        cache = make_cache(authority)
        with suppress_logging():
            first = run_pipeline(corpus, cache, max_workers=2)
            calls = len(authority.calls)
            second = run_pipeline(corpus, cache, max_workers=2)
        if first.label_of != second.label_of or len(authority.calls) != calls:
            return [(p.uri, p.parent_uri, p.text) for p in corpus]
        return None

    return _run_property("pipeline rerun stable", n_examples, check)


def check_extraction_unique(n_examples: int = 100) -> PropertyTestResult:
    """extract_candidates never returns the same string twice."""
    from candidate_extractor import extract_candidates

    def check(rng: random.Random) -> Any:
        parts = [_random_reply(rng) for _ in range(rng.randint(1, 4))]
        text = rng.choice([" ", "\n", " and "]).join(parts)
        candidates = extract_candidates(text)
        return None if len(candidates) == len(set(candidates)) else text

    return _run_property("extraction unique", n_examples, check)


ALL_PROPERTIES: list[Callable[[int], PropertyTestResult]] = [
    check_normalize_key_idempotent,
    check_normalize_key_ignores_case_and_spacing,
    check_inheritance_terminates,
    check_ranking_adds_up,
    check_pipeline_rerun_is_stable,
    check_extraction_unique,
]


def run_all_property_tests(n_examples: int = 100) -> list[PropertyTestResult]:
    """Run every property with the same number of examples."""
    return [prop(n_examples) for prop in ALL_PROPERTIES]


def format_results(results: list[PropertyTestResult]) -> str:
    """Format results as a short report."""
    lines = []
    for r in results:
        status = "✅" if r.passed else "❌"
        line = f"{status} {r.name} ({r.examples_tested} examples)"
        if not r.passed:
            line += f"\n   └─ {r.error}: {r.failing_example!r}"
        lines.append(line)
    passed = sum(1 for r in results if r.passed)
    lines.append(f"\n{passed}/{len(results)} properties passed")
    return "\n".join(lines)


# =============================================================================
# Unit Tests
# =============================================================================
def _create_module_tests() -> "TestSuite":
    """Create unit tests for property_tests module."""
    from test_framework import TestSuite

    suite = TestSuite("Property Tests")

    def make_case(prop: Callable[[int], PropertyTestResult]) -> Callable[[], None]:
        def run() -> None:
            result = prop(20)
            assert result.passed, f"{result.error}: {result.failing_example!r}"

        return run

    for prop in ALL_PROPERTIES:
        suite.add_test(prop.__doc__ or prop.__name__, make_case(prop))

    def test_format_results():
        results = [
            PropertyTestResult("first", True, 50),
            PropertyTestResult("second", False, 50, failing_example="x", error="boom"),
        ]
        formatted = format_results(results)
        assert "first" in formatted
        assert "boom" in formatted
        assert "1/2" in formatted

    suite.add_test("Format results", test_format_results)

    return suite


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("  Running Property-Based Tests")
    print("=" * 60 + "\n")

    results = run_all_property_tests(n_examples=100)
    print(format_results(results))
    sys.exit(0 if all(r.passed for r in results) else 1)
