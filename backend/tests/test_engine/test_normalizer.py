"""Tests for canonicalization, normalization and the equivalence predicate."""

import pytest

from app.engine.classifier import classify
from app.engine.normalizer import are_equivalent, canonicalize, normalize


# -- canonicalize ---------------------------------------------------------------


class TestCanonicalize:
    def test_case_whitespace_and_punctuation(self):
        assert canonicalize("  Add   a HAT!! ") == "add a hat"

    def test_politeness_prefixes_stripped_repeatedly(self):
        assert canonicalize("Please can you just add a hat") == "add a hat"

    def test_trailing_thanks_stripped(self):
        assert canonicalize("add a hat please") == "add a hat"

    @pytest.mark.parametrize("typo", ["backround", "backgound", "bakground", "bg", "back ground"])
    def test_background_typos(self, typo):
        assert canonicalize(f"change {typo} to forest") == "change background to forest"

    def test_british_spelling(self):
        assert canonicalize("change the colour to grey") == "change the color to gray"

    def test_verb_synonyms(self):
        assert canonicalize("get rid of the hat") == "remove the hat"
        assert canonicalize("delete the background") == "remove the background"
        assert canonicalize("modify the hat to red") == "change the hat to red"
        assert canonicalize("stick a flower on him") == "add a flower on him"

    def test_hockey_stick_is_a_noun(self):
        assert canonicalize("add a hockey stick") == "add a hockey stick"

    def test_ampersand_and_plus(self):
        assert canonicalize("add a hat & a cigar") == "add a hat and a cigar"
        assert canonicalize("add a hat + a cigar") == "add a hat and a cigar"

    def test_idempotent(self):
        once = canonicalize("Please, Change the BACKROUND to Forest.")
        assert canonicalize(once) == once


# -- normalize ------------------------------------------------------------------


class TestNormalize:
    def test_background(self):
        n = normalize("forest background")
        assert n.category == "background"
        assert n.normalized_form == "background:forest"
        assert n.confidence == 1.0
        assert n.rule_id == "BG.11"

    def test_background_removal(self):
        assert normalize("remove background").normalized_form == "background:<removed>"

    def test_color_change(self):
        n = normalize("make the teeth golden")
        assert n.category == "colorChange"
        assert n.normalized_form == "teeth->golden"
        assert n.fields == {"target": "teeth", "value": "golden"}

    def test_non_color_modification(self):
        n = normalize("turn him into a zombie")
        assert n.category == "modification"
        assert n.normalized_form == "main subject->zombie"

    def test_addition_carries_object_key(self):
        n = normalize("add a red hat to his head")
        assert n.category == "addition"
        assert n.fields["object"] == "red hat"
        assert n.fields["key"] == "hat"
        assert n.fields["location"] == "head"

    def test_removal(self):
        n = normalize("remove the cigar from his mouth")
        assert n.category == "removal"
        assert n.normalized_form == "remove:cigar"

    def test_unknown(self):
        n = normalize("hello there")
        assert n.category == "unknown"
        assert n.confidence == 0.0
        assert n.rule_id is None

    def test_vague_text_stays_unknown(self):
        # Vague fallbacks belong to the classifier, not the normalizer.
        assert normalize("make it better").category == "unknown"

    def test_memoized(self):
        assert normalize("add a hat") is normalize("add a hat")


# -- equivalence ----------------------------------------------------------------


EQUIVALENT = [
    ("remove background", "delete the background"),
    ("remove background", "no background"),
    ("remove background", "get rid of the bg"),
    ("change the background to forest", "forest background"),
    ("forest background", "forest behind him"),
    ("forest background", "please change the backround to forest."),
    ("make the hat red", "paint the hat red"),
    ("make the hat red", "change the color of the hat to red"),
    ("make the hat red", "change the hat color to red"),
    ("make it blue", "turn blue"),
    ("turn blue", "color blue"),
    ("add a hat", "put a hat"),
    ("add a hat", "give him a hat"),
    ("remove the hat", "no hat"),
]

NOT_EQUIVALENT = [
    ("add a hat", "remove the hat"),
    ("forest background", "city background"),
    ("make the hat red", "make the hat blue"),
    ("add a hat", "hat background"),
]


@pytest.mark.parametrize("a,b", EQUIVALENT)
def test_equivalent(a, b):
    assert are_equivalent(a, b)


@pytest.mark.parametrize("a,b", NOT_EQUIVALENT)
def test_not_equivalent(a, b):
    assert not are_equivalent(a, b)


@pytest.mark.parametrize("a,b", EQUIVALENT)
def test_equivalent_instructions_classify_alike(a, b):
    assert classify(a).signature() == classify(b).signature()
