"""Tests for conflict resolution."""

from app.engine.config import CompilerConfig
from app.engine.conflicts import resolve, specificity
from app.models.operations import (
    BackgroundEdit,
    GeneralEdit,
    ObjectAddition,
    ObjectModification,
    ObjectRemoval,
    UnparsedInstruction,
)


def _add(obj: str = "hat", key: str = "hat", **kw) -> ObjectAddition:
    return ObjectAddition(source_text=f"add {obj}", object=obj, key=key, confidence=kw.pop("confidence", 0.85), **kw)


def _mod(target: str = "hat", value: str = "blue", **kw) -> ObjectModification:
    return ObjectModification(
        source_text=f"make the {target} {value}",
        modified=target,
        new_value=value,
        confidence=kw.pop("confidence", 0.8),
        **kw,
    )


def _rm(target: str = "hat") -> ObjectRemoval:
    return ObjectRemoval(source_text=f"remove the {target}", removed=target, confidence=0.85)


def _bg(desc: str, removal: bool = False) -> BackgroundEdit:
    return BackgroundEdit(source_text=f"{desc} background", target_description=desc, is_removal=removal)


# -- Specificity ----------------------------------------------------------------


class TestSpecificity:
    def test_modification_with_target_and_value(self):
        assert specificity(_mod()) == 1.0

    def test_bare_addition(self):
        assert specificity(_add()) == 0.7

    def test_descriptive_addition(self):
        assert specificity(_add("red hat")) == 0.9

    def test_location_bonus(self):
        assert specificity(_add("red hat", location="head")) == 1.0

    def test_pronoun_target_gets_no_bonus(self):
        assert specificity(_mod("main subject", "blue")) == 0.8

    def test_recovered_penalty(self):
        assert specificity(_mod(origin="recovered")) == 0.7

    def test_custom_weights(self):
        config = CompilerConfig(type_weights={"object_modification": 0.1})
        assert specificity(_mod(), config) == 0.5


# -- Precedence -----------------------------------------------------------------


class TestPrecedence:
    def test_later_modification_beats_addition(self):
        add, mod = _add(), _mod()
        result = resolve([add, mod])
        assert result.operations == [mod]
        assert len(result.overrides) == 1
        override = result.overrides[0]
        assert override.discarded is add
        assert override.survivor is mod
        assert override.rule == "specificity"
        assert override.target == "hat"

    def test_removal_wins_regardless_of_order(self):
        for ops in ([_rm(), _add(), _mod()], [_add(), _rm(), _mod()], [_add(), _mod(), _rm()]):
            result = resolve(ops)
            assert len(result.operations) == 1
            assert isinstance(result.operations[0], ObjectRemoval)
            assert {o.rule for o in result.overrides} == {"removal_wins"}

    def test_latest_background_wins(self):
        forest, city = _bg("forest"), _bg("city")
        result = resolve([forest, city])
        assert result.operations == [city]
        assert result.overrides[0].rule == "background_wins"

    def test_background_removal_then_replacement(self):
        removal, city = _bg("", removal=True), _bg("city")
        assert resolve([removal, city]).operations == [city]

    def test_equal_specificity_prefers_latest(self):
        red, blue = _add("red hat"), _add("blue hat")
        result = resolve([red, blue])
        assert result.operations == [blue]
        assert result.overrides[0].rule == "specificity"

    def test_highest_confidence_when_nothing_specific(self):
        weak = _add(origin="recovered", confidence=0.5)
        strong = _mod("hat", "bigger", origin="recovered", confidence=0.6)
        result = resolve([strong, weak])
        assert result.operations == [strong]
        assert result.overrides[0].rule == "confidence"

    def test_latest_when_confidence_ties(self):
        first = _add(origin="recovered", confidence=0.5)
        second = _add("hat", origin="recovered", confidence=0.5)
        result = resolve([first, second])
        assert result.operations[0] is second
        assert result.overrides[0].rule == "latest"


# -- Grouping and ordering ------------------------------------------------------


class TestGrouping:
    def test_synonyms_share_a_target(self):
        glasses = _add("glasses", key="glasses")
        result = resolve([glasses, _rm("sunglasses")])
        assert len(result.operations) == 1
        assert result.overrides[0].target == "sunglasses"

    def test_cigarette_is_cigar(self):
        result = resolve([_add("cigarette", key="cigarette"), _mod("cigar", "gold")])
        assert len(result.operations) == 1

    def test_distinct_targets_untouched(self):
        ops = [_add(), _mod("teeth", "golden"), _bg("forest")]
        result = resolve(ops)
        assert result.operations == ops
        assert result.overrides == []

    def test_survivors_keep_original_order(self):
        bg, add, mod, teeth = _bg("forest"), _add(), _mod(), _mod("teeth", "gold")
        result = resolve([bg, add, mod, teeth])
        assert result.operations == [bg, mod, teeth]

    def test_groups_resolved_in_priority_order(self):
        result = resolve([_add(), _mod(), _bg("forest"), _bg("city")])
        assert [o.rule for o in result.overrides] == ["background_wins", "specificity"]
        assert [op.source_text for op in result.operations] == ["make the hat blue", "city background"]

    def test_invalid_operations_pass_through(self):
        unparsed = UnparsedInstruction(source_text="hello there")
        general = GeneralEdit(source_text="make it better", subject="overall appearance", note="enhanced")
        result = resolve([unparsed, general])
        assert result.operations == [unparsed, general]

    def test_override_as_dict(self):
        result = resolve([_add(), _mod()])
        assert result.overrides[0].as_dict() == {
            "target": "hat",
            "discarded": "add hat",
            "survivor": "make the hat blue",
            "rule": "specificity",
        }
