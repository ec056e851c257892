"""Noise tables for candidate extraction and reaction detection.

This module holds the shared word lists that keep obvious non-titles out
of the candidate set, without pulling any heavier dependency in.

Constants:
- TITLE_CONNECTORS: lowercase words allowed inside a Title Case run
- NOISE_PHRASES: Title Case phrases that are conversational, not titles
- QUOTED_NOISE: generic quoted words ("movie", "this one")
- CAPS_NOISE: internet acronyms that look like ALL CAPS titles
- REACTION_STOPWORDS: single words that are reactions, never titles
- SENTENCE_PREFIX_PATTERN: openers that mark a line as prose
- PROMPT_ADJECTIVES, FUNCTION_WORDS, ANSWER_STOPWORDS: self-validation filters

Consumers:
- candidate_extractor.py
- reaction_classifier.py
- authorities/self_validated.py
"""

import re

# =============================================================================
# Title Case Connectors
# =============================================================================
# Lowercase words that may sit between capitalized tokens of one title,
# e.g. "Raiders of the Lost Ark", "Kramer vs. Kramer".

TITLE_CONNECTORS: tuple[str, ...] = (
    "for",
    "from",
    "with",
    "the",
    "and",
    "of",
    "a",
    "an",
    "in",
    "on",
    "at",
    "to",
    "is",
    "or",
    "not",
    "no",
    "it",
    "its",
    "my",
    "his",
    "her",
    "as",
    "so",
    "but",
    "by",
    "&",
    "vs.",
    "vs",
    "v.",
    "v",
)

# =============================================================================
# Noise Phrases
# =============================================================================
# Title Case runs that show up in replies but are never titles. Stored
# lowercase; compare with is_noise_phrase().

NOISE_PHRASES: frozenset[str] = frozenset(
    {
        # First-person openers
        "i am",
        "i was",
        "i think",
        "i love",
        "i just",
        "i mean",
        "i also",
        "oh my",
        "also my",
        "not sure",
        "just watched",
        "looking at",
        # Family references
        "my dad",
        "my dad's",
        "my father",
        "my mom",
        "my kids",
        "my wife",
        "my husband",
        # Generic praise
        "so good",
        "pretty good",
        "great answer",
        "good call",
        "same here",
        "me too",
        "honorable mention",
        "love that movie",
        "hard mode",
        # Generic movie references
        "dad movie",
        "dad movies",
        "good movie",
        "great movie",
        "best movie",
        "any movie",
        "favorite movie",
        "this movie",
        "that movie",
        # Social media idioms
        "fun fact",
        "pro tip",
        "hot take",
    }
)

QUOTED_NOISE: frozenset[str] = frozenset(
    {
        "dad movie",
        "dad movies",
        "favorite movie",
        "best movie",
        "movie",
        "movies",
        "film",
        "films",
        "this one",
        "that one",
    }
)

CAPS_NOISE: frozenset[str] = frozenset(
    {
        "WTAF",
        "OMFG",
        "LMAO",
        "LMBO",
        "OMG",
        "LOL",
        "WTF",
        "IMO",
        "IMHO",
        "IIRC",
        "TIL",
        "PSA",
        "FYI",
        "RIP",
        "AMA",
    }
)

# =============================================================================
# Reaction Stopwords
# =============================================================================
# Single-word replies that never name anything.

REACTION_STOPWORDS: frozenset[str] = frozenset(
    {
        "yes",
        "no",
        "yep",
        "nope",
        "same",
        "agreed",
        "exactly",
        "absolutely",
        "lol",
        "lmao",
        "omg",
        "okay",
        "ok",
        "right",
        "correct",
        "true",
        "nice",
        "cool",
        "great",
        "amazing",
        "perfect",
        "classic",
    }
)

# =============================================================================
# Sentence Openers
# =============================================================================
# A line starting with one of these reads as prose, not as a bare title.

SENTENCE_PREFIX_PATTERN = re.compile(
    r"^(i |my |we |he |she |it |they |you |this is|that is|if |but |when |"
    r"where |what |why |how |there |here |also |just |not |can |could |"
    r"would |should |do |does |did |have |has |had |was |were |"
    r"the question|growing up|used to|i've |i'm |it's |that's |there's |"
    r"in the |in my |in a |in order|in chronological|for the |for my |for a )",
    re.IGNORECASE,
)

# Quoted spans opening like this are reported speech, not titles
QUOTED_SENTENCE_PREFIX_PATTERN = re.compile(
    r"^(my |your |i |we |he |she |it |this |that |if |but |when |where |"
    r"what |why |how )",
    re.IGNORECASE,
)


def is_noise_phrase(phrase: str) -> bool:
    """
    Check if a Title Case phrase is conversational noise.

    Args:
        phrase: Candidate phrase as extracted

    Returns:
        True if the phrase should be dropped
    """
    if not phrase:
        return True
    return phrase.strip().lower() in NOISE_PHRASES


def is_reaction_stopword(text: str) -> bool:
    """Check if text is a single reaction word like 'yes' or 'classic'."""
    return text.strip().strip("!?.").lower() in REACTION_STOPWORDS


def starts_like_sentence(text: str) -> bool:
    """Check if text opens the way prose does ("I think", "My dad", ...)."""
    return bool(SENTENCE_PREFIX_PATTERN.match(text.strip()))


# =============================================================================
# Self-Validation Tables
# =============================================================================
# Used when no external authority is available and the thread itself is
# trusted: prompt adjectives ("your all-time favorite ..."), words that end
# a noun phrase, and everyday words that are never an open-ended answer.

PROMPT_ADJECTIVES: frozenset[str] = frozenset(
    {
        "home", "favorite", "fav", "go-to", "all-time", "top", "first",
        "best", "worst", "childhood", "guilty", "pleasure", "least", "most",
        "hated",
    }
)

FUNCTION_WORDS: frozenset[str] = frozenset(
    {
        "so", "and", "or", "but", "for", "from", "with", "the", "a", "an",
        "in", "on", "at", "to", "of", "is", "are", "was", "were", "be",
        "been", "being", "have", "has", "had", "do", "does", "did", "will",
        "would", "could", "should", "may", "might", "shall", "can", "must",
        "that", "which", "who", "this", "these", "those", "my", "your",
        "his", "her", "its", "our", "their", "mine", "yours", "it", "they",
        "we", "he", "she", "me", "him", "us", "them", "i", "you", "not",
        "no", "if", "when", "where", "how", "what", "why", "because",
        "since", "although", "though", "while", "until", "after", "before",
        "during", "about", "into", "through",
    }
)

ANSWER_STOPWORDS: frozenset[str] = frozenset(
    {
        "here", "there", "what", "when", "where", "how", "why", "then",
        "now", "just", "also", "not", "too", "oh", "well", "so", "very",
        "really", "still", "even", "much", "many", "some", "any", "all",
        "both", "each", "every", "other", "another", "such", "more", "most",
        "less", "few", "only", "own", "same", "than", "like", "right",
        "good", "new", "old", "big", "long", "little", "great", "always",
        "never", "today", "yes", "no", "beautiful", "pretty", "amazing",
        "awesome", "gorgeous", "incredible", "lovely", "wonderful",
        "terrible", "horrible", "perfect", "cool", "nice", "fun", "wild",
        "love", "grew", "lived", "born", "moved", "spent", "miss",
        "remember", "weird", "funny", "mine", "ours", "lol", "nope", "yep",
        "yeah", "absolutely", "definitely", "literally", "basically",
        "obviously", "actually", "honestly", "seriously", "technically",
    }
)


def is_filler_word(word: str) -> bool:
    """Check if a lowercase word carries no answer on its own."""
    return word in ANSWER_STOPWORDS or word in FUNCTION_WORDS or word in PROMPT_ADJECTIVES


# =============================================================================
# Module Tests
# =============================================================================


def _create_module_tests():
    """Create unit tests for entity_constants module."""
    from test_framework import TestSuite

    suite = TestSuite("Entity Constants")

    def test_noise_phrase():
        assert is_noise_phrase("I Think") is True
        assert is_noise_phrase("Me Too") is True
        assert is_noise_phrase("The Godfather") is False
        assert is_noise_phrase("Good One") is False

    def test_reaction_stopword():
        assert is_reaction_stopword("Classic!") is True
        assert is_reaction_stopword("Heat") is False

    def test_sentence_prefix():
        assert starts_like_sentence("I like stuff") is True
        assert starts_like_sentence("This is the one") is True
        assert starts_like_sentence("Jaws") is False

    def test_filler_word():
        assert is_filler_word("honestly") is True
        assert is_filler_word("favorite") is True
        assert is_filler_word("jaws") is False

    suite.add_test("is_noise_phrase", test_noise_phrase)
    suite.add_test("is_reaction_stopword", test_reaction_stopword)
    suite.add_test("starts_like_sentence", test_sentence_prefix)
    suite.add_test("is_filler_word", test_filler_word)

    return suite
