"""Tests for error classification, fix strategies and the self-correction loop."""

import pytest
from unittest.mock import AsyncMock

from autopilot.healing.classifier import (
    ErrorCategory,
    classify,
    confidence_description,
    extract_context,
    fix_priority,
)
from autopilot.healing.correction import SelfCorrectionEngine
from autopilot.healing.fixes import FixResult, FixStrategyResolver
from autopilot.tools.registry import ToolRegistry


class TestClassifier:
    def test_component_not_found(self):
        analysis = classify("❌ Component 'Rigidbody' not found")
        assert analysis.category is ErrorCategory.COMPONENT_NOT_FOUND
        assert analysis.confidence >= 8
        assert analysis.context["component"] == "Rigidbody"
        assert analysis.possible_fixes

    @pytest.mark.parametrize("text,category,confidence", [
        ("error CS0246: The type 'Foo' could not be found", ErrorCategory.COMPILATION, 9),
        ("Assets/A.cs(4,10): error CS1002: ; expected", ErrorCategory.COMPILATION, 10),
        ("error CS1513: } expected", ErrorCategory.COMPILATION, 9),
        ("error CS0122: 'X' is inaccessible due to its protection level", ErrorCategory.COMPILATION, 8),
        ("Compilation failed: weird", ErrorCategory.COMPILATION, 6),
        ("GameObject 'Player' not found", ErrorCategory.GAMEOBJECT_NOT_FOUND, 9),
        ("Script 'Timer' not found", ErrorCategory.SCRIPT_NOT_FOUND, 8),
        ("Texture does not exist", ErrorCategory.RESOURCE_NOT_FOUND, 7),
        ("NullReferenceException: Object reference", ErrorCategory.NULL_REFERENCE, 8),
        ("Cannot convert string to int", ErrorCategory.TYPE_MISMATCH, 7),
        ("Invalid argument supplied", ErrorCategory.INVALID_PARAMETER, 7),
        ("Permission denied writing asset", ErrorCategory.PERMISSION_DENIED, 8),
        ("Operation failed unexpectedly", ErrorCategory.RUNTIME, 5),
        ("the moon is made of cheese", ErrorCategory.UNKNOWN, 3),
    ])
    def test_categories(self, text, category, confidence):
        analysis = classify(text)
        assert analysis.category is category
        assert analysis.confidence == confidence

    def test_empty_input_is_unknown(self):
        assert classify("").category is ErrorCategory.UNKNOWN
        assert classify(None).original_error == ""

    def test_analysis_is_immutable(self):
        analysis = classify("GameObject 'Player' not found")
        with pytest.raises(AttributeError):
            analysis.confidence = 1
        with pytest.raises(TypeError):
            analysis.context["gameobject"] = "Other"

    def test_extract_context(self):
        ctx = extract_context("error in 'Assets/Timer.cs' at line 12 on GameObject 'Clock'")
        assert ctx == {"line": "12", "file": "Assets/Timer.cs", "gameobject": "Clock"}

    def test_render(self):
        text = classify("GameObject 'Player' not found").render()
        assert "Category: GameObjectNotFound" in text
        assert "Confidence: 9/10 (Very High)" in text
        assert "1. Create the GameObject first" in text

    @pytest.mark.parametrize("confidence,label", [
        (10, "Very High"), (7, "High"), (5, "Medium"), (3, "Low"), (1, "Very Low"),
    ])
    def test_confidence_description(self, confidence, label):
        assert confidence_description(confidence) == label

    def test_fix_priority(self):
        assert fix_priority(ErrorCategory.COMPILATION) == 10
        assert fix_priority(ErrorCategory.RUNTIME) == 6
        assert fix_priority(ErrorCategory.UNKNOWN) == 5


class TestFixStrategyResolver:
    async def test_creates_missing_gameobject(self, surface, scene):
        resolver = FixStrategyResolver(surface)
        result = await resolver.apply(classify("❌ Error: GameObject 'Player' not found"))
        assert result.success
        assert result.changes_applied == ["Created GameObject: Player"]
        assert "Player" in scene.gameobjects

    async def test_existing_gameobject_needs_no_change(self, surface, scene):
        scene.gameobjects["Player"] = ["Transform"]
        result = await FixStrategyResolver(surface).apply(classify("GameObject 'Player' not found"))
        assert result.success
        assert result.changes_applied == []

    async def test_adds_missing_component(self, surface, scene):
        scene.gameobjects["Ball"] = ["Transform"]
        result = await FixStrategyResolver(surface).apply(
            classify("Component 'Rigidbody' not found"), {"gameobject_name": "Ball"},
        )
        assert result.success
        assert scene.gameobjects["Ball"] == ["Transform", "Rigidbody"]

    async def test_component_fix_needs_target(self, surface):
        result = await FixStrategyResolver(surface).apply(classify("Component 'Rigidbody' not found"))
        assert not result.success
        assert result.guidance

    async def test_adds_missing_usings(self, surface, scene):
        scene.scripts["Timer"] = "public class Timer : MonoBehaviour {}"
        analysis = classify("error CS0246: 'MonoBehaviour' could not be found")
        result = await FixStrategyResolver(surface).apply(analysis, {"script_name": "Timer"})
        assert result.success
        assert scene.scripts["Timer"].startswith("using System.Collections.Generic;")
        assert "using UnityEngine;" in scene.scripts["Timer"]
        assert len(result.changes_applied) == 3

    async def test_adds_semicolon_from_file_context(self, surface, scene):
        scene.scripts["Timer"] = "class Timer {\n    int x = 1\n}"
        analysis = classify("error CS1002: ; expected in 'Assets/Timer.cs' line 2")
        result = await FixStrategyResolver(surface).apply(analysis)
        assert result.success
        assert scene.scripts["Timer"] == "class Timer {\n    int x = 1;\n}"

    async def test_compilation_without_script(self, surface):
        result = await FixStrategyResolver(surface).apply(classify("error CS1002: ; expected"))
        assert not result.success
        assert result.details == "Cannot determine which script has the error"
        assert result.guidance == ["Add semicolon at end of statement", "Check for syntax errors in line"]

    async def test_compilation_with_missing_script(self, surface):
        analysis = classify("error CS1002: ; expected")
        result = await FixStrategyResolver(surface).apply(analysis, {"script_name": "Ghost"})
        assert not result.success
        assert result.details == "Script 'Ghost' not found"
        assert result.guidance == list(analysis.possible_fixes)

    async def test_guidance_only_category(self, surface):
        result = await FixStrategyResolver(surface).apply(classify("NullReferenceException"))
        assert not result.success
        assert result.changes_applied == []
        assert result.guidance
        assert "Suggestions:" in result.render()

    async def test_unknown_category(self, surface):
        result = await FixStrategyResolver(surface).apply(classify("the moon is made of cheese"))
        assert not result.success
        assert result.action == "No automatic fix available"

    async def test_handler_exception_is_contained(self):
        surface = AsyncMock(spec=ToolRegistry)
        surface.invoke.side_effect = RuntimeError("editor crashed")
        result = await FixStrategyResolver(surface).apply(classify("GameObject 'Player' not found"))
        assert not result.success
        assert "editor crashed" in result.details


class TestSelfCorrectionEngine:
    async def test_always_failing_exhausts_retries(self):
        surface = AsyncMock(spec=ToolRegistry)
        surface.invoke.return_value = "❌ Error: something broke"
        resolver = AsyncMock(spec=FixStrategyResolver)
        resolver.apply.return_value = FixResult(success=False, action="none")

        engine = SelfCorrectionEngine(surface, resolver=resolver, max_retries=3)
        result, session = await engine.run("explode", {"x": "1"})

        assert result == "❌ Error: something broke"
        assert surface.invoke.await_count == 3
        assert len(session.attempts) == 3
        assert not session.success
        # No fix after the final attempt
        assert resolver.apply.await_count == 2
        assert session.attempts[-1].fix is None
        for call in surface.invoke.await_args_list:
            assert call.args == ("explode", {"x": "1"})

    async def test_fix_then_retry_succeeds(self, surface, scene):
        engine = SelfCorrectionEngine(surface, max_retries=3)
        messages = []
        result, session = await engine.run(
            "add_component",
            {"gameobject_name": "Player", "component_type": "Rigidbody"},
            progress=messages.append,
        )
        assert result == "✅ Added Rigidbody to Player"
        assert session.success
        assert len(session.attempts) == 2
        assert session.fixes_applied == 1
        assert scene.gameobjects["Player"] == ["Transform", "Rigidbody"]
        assert "Success on attempt 2" in messages

    async def test_unknown_outcome_follows_fail_open(self):
        surface = AsyncMock(spec=ToolRegistry)
        surface.invoke.return_value = ""
        assert (await SelfCorrectionEngine(surface, max_retries=2).run("op"))[1].success

        resolver = AsyncMock(spec=FixStrategyResolver)
        resolver.apply.return_value = FixResult(success=False, action="none")
        closed = SelfCorrectionEngine(surface, resolver=resolver, max_retries=2, fail_open=False)
        _, session = await closed.run("op")
        assert not session.success
        assert len(session.attempts) == 2

    async def test_execute_with_correction_returns_text(self, surface):
        engine = SelfCorrectionEngine(surface)
        assert await engine.execute_with_correction("create_gameobject", {"name": "A"}) == (
            "✅ Created GameObject 'A'"
        )
        assert engine.last_session.success

    def test_rejects_zero_retries(self, surface):
        with pytest.raises(ValueError):
            SelfCorrectionEngine(surface, max_retries=0)

    async def test_validate_checks_surface(self, surface, scene):
        engine = SelfCorrectionEngine(surface)
        assert not await engine.validate("create_gameobject", {"name": "A"}, "✅ Created")
        scene.gameobjects["A"] = ["Transform"]
        assert await engine.validate("create_gameobject", {"name": "A"}, "✅ Created")
        assert not await engine.validate(
            "add_component", {"gameobject_name": "A", "component_type": "Light"}, "✅",
        )
        assert await engine.validate("other_op", {}, "fine")
        assert not await engine.validate("other_op", {}, "❌ Error: x")

    async def test_statistics_and_summary(self, surface):
        engine = SelfCorrectionEngine(surface, max_retries=2)
        _, session = await engine.run("read_script", {"script_name": "Ghost"})
        stats = engine.statistics()
        assert stats["sessions"] == 1
        assert stats["successes"] == 0
        assert stats["attempts"] == 2
        summary = session.summary()
        assert "Attempts: 2/2" in summary
        assert "Final Status: FAILED" in summary
        assert "Category: ScriptNotFound" in summary
