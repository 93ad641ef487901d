"""Tests for first-match-wins rule sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

import numpy as np
import pytest
from pydantic import BaseModel, ConfigDict, Field

from refill import (
    SKIP,
    CompilationError,
    FieldFillingError,
    Rule,
    RuleSet,
    capture,
)


@dataclass
class Something:
    a: int = 0


@dataclass
class SkipFirst:
    a: int = field(default=0, metadata=capture(SKIP))
    b: int = field(default=0, metadata=capture("a"))


@dataclass
class SkipLast:
    b: int = field(default=0, metadata=capture("a"))
    a: int = field(default=0, metadata=capture(SKIP))


@dataclass
class Sensor:
    name: str = ""
    temperature: np.float32 = np.float32(0.0)
    online: bool = False


class Gauge(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    level: int = Field(default=1, gt=0)


class TestHumanRules:
    """Tests over the two-rule human set."""

    def test_height(self, human_rules: RuleSet) -> None:
        """Test the optional height is filled by the second rule."""
        rule = human_rules.match_string("John is 178 cm tall")
        assert rule is not None
        assert rule.label == "height"
        assert rule.record.name == "John"
        assert rule.record.height == 178

    @pytest.mark.parametrize("text", ["John is 42 years old", "John is 42"])
    def test_age(self, human_rules: RuleSet, text: str) -> None:
        """Test the age rule fills name and age."""
        rule = human_rules.match_string(text)
        assert rule is not None
        assert rule.label == "age"
        assert rule.record.name == "John"
        assert rule.record.age == 42

    @pytest.mark.parametrize("text", ["John is old", "John is great"])
    def test_absent_age_zeroed(self, human_rules: RuleSet, text: str) -> None:
        """Test a non-participating age group resets age to zero."""
        human_rules.match_string("John is 42")
        rule = human_rules.match_string(text)
        assert rule is not None
        assert rule.record.name == "John"
        assert rule.record.age == 0

    def test_no_match(self, human_rules: RuleSet) -> None:
        """Test unmatched input returns None and leaves records unchanged."""
        before = [replace(r.record) for r in human_rules]
        assert human_rules.match_string("John was 42 years old") is None
        assert [r.record for r in human_rules] == before

    def test_lazy_compile(self, human_rules: RuleSet) -> None:
        """Test the first match compiles the set."""
        assert human_rules.is_compiled is False
        human_rules.match_string("nobody")
        assert human_rules.is_compiled is True
        assert all(r.is_compiled for r in human_rules)


class TestFirstMatchWins:
    """Tests for rule ordering."""

    def test_earlier_rule_wins(self) -> None:
        """Test the first matching rule is returned and the later record untouched."""
        first, second = Something(), Something(a=-1)
        rs = RuleSet(
            [
                Rule(r"(?P<a>\d+)", first, label="first"),
                Rule(r"(?P<a>\d+)", second, label="second"),
            ]
        )
        rule = rs.match_string("7")
        assert rule is not None
        assert rule.label == "first"
        assert first.a == 7
        assert second.a == -1

    def test_shared_record(self) -> None:
        """Test two rules can fill one record instance."""
        sensor = Sensor()
        rs = RuleSet(
            [
                Rule(r"(?P<name>\w+): (?P<temperature>[-\d.]+)C", sensor, label="temp"),
                Rule(r"(?P<name>\w+) is (?P<online>on|off)line", sensor, label="state"),
            ]
        )
        rs.match_string("station1: 21.5C")
        assert sensor.temperature == np.float32(21.5)
        with pytest.raises(FieldFillingError, match="field online"):
            rs.match_string("station1 is online")


class TestFillingErrors:
    """Tests for coercion failures across a set."""

    def test_validated_model_rejection(self) -> None:
        """Test a model refusing a parsed value surfaces as FieldFillingError."""
        fallback = Gauge()
        rs = RuleSet(
            [
                Rule(r"(?P<level>-?\d+)", Gauge(), label="gauge"),
                Rule(r"(?P<level>-?\d+)", fallback, label="fallback"),
            ]
        )
        with pytest.raises(FieldFillingError, match="field level") as exc_info:
            rs.match_string("-5")
        assert exc_info.value.label == "gauge"
        assert fallback.level == 1

    def test_bad_field(self) -> None:
        """Test a non-numeric capture into an int field fails."""
        rs = RuleSet([Rule(r"(?P<a>\w+)", Something())])
        with pytest.raises(FieldFillingError, match="could not fill field a") as exc_info:
            rs.match_string("anything")
        assert exc_info.value.field_name == "a"
        assert isinstance(exc_info.value.error, ValueError)

    def test_error_stops_scan(self) -> None:
        """Test later rules are not tried after a filling error."""
        fallback = Something(a=-1)
        rs = RuleSet(
            [
                Rule(r"(?P<a>\w+)", Something(), label="strict"),
                Rule(r"(?P<a>\w+)", fallback, label="fallback"),
            ]
        )
        with pytest.raises(FieldFillingError) as exc_info:
            rs.match_string("abc")
        assert exc_info.value.label == "strict"
        assert fallback.a == -1


class TestSkip:
    """Tests for the skip sentinel."""

    def test_skip_before_override(self) -> None:
        """Test a skipped field keeps its value and the override is filled."""
        rs = RuleSet(
            [
                Rule(r"a:(?P<a>\d+)", SkipFirst(a=5)),
                Rule(r"b:(?P<a>\d+)", SkipLast(a=6)),
            ]
        )
        rule = rs.match_string("a:123")
        assert rule is not None
        assert rule.record == SkipFirst(a=5, b=123)

        rule = rs.match_string("b:123")
        assert rule is not None
        assert rule.record == SkipLast(b=123, a=6)


class TestCompilation:
    """Tests for set-level compilation."""

    def test_bad_regex_on_compile(self) -> None:
        """Test explicit compile raises CompilationError."""
        rs = RuleSet([Rule(r"(?P<\w+) is old", Something(), label="bad")])
        with pytest.raises(CompilationError):
            rs.compile()
        assert rs.is_compiled is False

    def test_bad_regex_on_match(self) -> None:
        """Test the first match raises the same CompilationError."""
        rs = RuleSet([Rule(r"(?P<\w+) is old", Something(), label="bad")])
        with pytest.raises(CompilationError, match="could not compile rule 'bad'"):
            rs.match_string("anything")

    def test_failed_compile_is_retried(self) -> None:
        """Test a failed lazy compile is attempted again on the next call."""
        good = Rule(r"(?P<a>\d+)", Something(), label="good")
        bad = Rule(r"(unclosed", Something(), label="bad")
        rs = RuleSet([good, bad])
        for _ in range(2):
            with pytest.raises(CompilationError) as exc_info:
                rs.match_string("1")
            assert exc_info.value.label == "bad"
        assert rs.is_compiled is False
        assert good.is_compiled is True
        assert bad.is_compiled is False

    def test_compile_twice_is_idempotent(self, human_rules: RuleSet) -> None:
        """Test recompiling yields identical binding maps."""
        human_rules.compile()
        first = [r.bindings for r in human_rules]
        human_rules.compile()
        assert [r.bindings for r in human_rules] == first

    def test_compile_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test compile failures are logged as warnings."""
        rs = RuleSet([Rule(r"(", Something(), label="bad")], name="broken")
        with caplog.at_level(logging.WARNING, logger="refill.ruleset"):
            with pytest.raises(CompilationError):
                rs.compile()
        assert "broken" in caplog.text


class TestAdd:
    """Tests for RuleSet.add."""

    def test_add_before_compile(self) -> None:
        """Test rules added to an uncompiled set are compiled lazily."""
        rs = RuleSet()
        rule = Rule(r"(?P<a>\d+)", Something())
        rs.add(rule)
        assert rule.is_compiled is False
        assert rs.match_string("3") is rule

    def test_add_after_compile(self) -> None:
        """Test rules added to a compiled set are compiled immediately."""
        rs = RuleSet([Rule(r"x", Something())])
        rs.compile()
        rule = Rule(r"(?P<a>\d+)", Something())
        rs.add(rule)
        assert rule.is_compiled is True
        assert rs.match_string("3") is rule

    def test_add_invalid_after_compile(self) -> None:
        """Test an invalid rule is not appended to a compiled set."""
        rs = RuleSet([Rule(r"x", Something())])
        rs.compile()
        with pytest.raises(CompilationError):
            rs.add(Rule(r"(", Something()))
        assert len(rs) == 1
        assert rs.is_compiled is True


class TestRuleSetBasics:
    """Tests for container behavior."""

    def test_container(self, human_rules: RuleSet) -> None:
        """Test length, iteration and rule access."""
        assert len(human_rules) == 2
        assert [r.label for r in human_rules] == ["age", "height"]
        assert human_rules.rules[0].label == "age"
        assert human_rules.name == "humans"

    def test_empty_set(self) -> None:
        """Test an empty set never matches."""
        assert RuleSet().match_string("anything") is None

    def test_repr(self, human_rules: RuleSet) -> None:
        assert repr(human_rules) == "RuleSet(name='humans', rules=2)"
