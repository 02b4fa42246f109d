"""Tests for the tool surface: outcome markers, registry and scene tools."""

import pytest

from autopilot.tools.base import BaseTool, ToolResult
from autopilot.tools.outcome import ToolOutcome, detect_outcome, is_success, resolve
from autopilot.tools.registry import ToolRegistry


class ExplodingTool(BaseTool):
    @property
    def name(self):
        return "explode"

    @property
    def description(self):
        return "Always raises"

    @property
    def parameters(self):
        return {"type": "object", "properties": {"why": {"type": "string"}}, "required": []}

    async def execute(self, **kwargs):
        raise RuntimeError("boom")


class TestOutcome:
    @pytest.mark.parametrize("text,expected", [
        ("✅ Created GameObject 'Player'", ToolOutcome.SUCCESS),
        ("❌ Error: nope", ToolOutcome.FAILURE),
        ("Compilation Failed", ToolOutcome.FAILURE),
        ("Error while reading", ToolOutcome.FAILURE),
        ("done, probably", ToolOutcome.UNKNOWN),
        ("", ToolOutcome.UNKNOWN),
        ("   ", ToolOutcome.UNKNOWN),
        (None, ToolOutcome.UNKNOWN),
    ])
    def test_detect(self, text, expected):
        assert detect_outcome(text) is expected

    def test_success_marker_wins(self):
        assert detect_outcome("✅ Fixed the Error in line 3") is ToolOutcome.SUCCESS

    def test_unknown_follows_policy(self):
        assert resolve(ToolOutcome.UNKNOWN, fail_open=True) is True
        assert resolve(ToolOutcome.UNKNOWN, fail_open=False) is False
        assert resolve(ToolOutcome.FAILURE, fail_open=True) is False
        assert is_success("", fail_open=False) is False


class TestToolResult:
    def test_render_success(self):
        assert ToolResult(success=True, output="ok").render() == "✅ ok"
        assert ToolResult(success=True).render() == "✅"

    def test_render_failure(self):
        assert ToolResult(success=False, error="bad").render() == "❌ Error: bad"
        assert ToolResult(success=False).render() == "❌ Error: unknown failure"


class TestToolRegistry:
    async def test_unknown_operation(self, surface):
        reply = await surface.invoke("teleport", {})
        assert detect_outcome(reply) is ToolOutcome.FAILURE
        assert "Unknown operation 'teleport'" in reply

    async def test_exception_becomes_failure_text(self):
        registry = ToolRegistry([ExplodingTool()])
        reply = await registry.invoke("explode")
        assert reply == "❌ Error: boom"

    def test_describe_and_groups(self, surface):
        text = surface.describe()
        assert "- create_gameobject(name): Create a new GameObject" in text
        assert "content?" in text
        groups = surface.groups()
        assert "find_gameobject" in groups["scene"]
        assert "read_script" in groups["scripts"]
        assert surface.has("add_component")
        assert len(surface.schemas()) == len(surface.names())


class TestSceneTools:
    async def test_create_and_find(self, surface, scene):
        assert (await surface.invoke("create_gameobject", {"name": "Player"})).startswith("✅")
        assert scene.gameobjects["Player"] == ["Transform"]
        assert (await surface.invoke("find_gameobject", {"name": "Player"})).startswith("✅")

    async def test_missing_gameobject(self, surface):
        reply = await surface.invoke("find_gameobject", {"name": "Ghost"})
        assert reply == "❌ Error: GameObject 'Ghost' not found"

    async def test_missing_parameter(self, surface):
        reply = await surface.invoke("add_component", {"gameobject_name": "Player"})
        assert reply == "❌ Error: Missing parameter: component_type"

    async def test_components_listed(self, surface):
        await surface.invoke("create_gameobject", {"name": "Ball"})
        await surface.invoke("add_component", {"gameobject_name": "Ball", "component_type": "Rigidbody"})
        reply = await surface.invoke("get_components", {"gameobject_name": "Ball"})
        assert reply == "✅ Components on Ball: Transform, Rigidbody"

    async def test_script_lifecycle(self, surface, scene):
        await surface.invoke("create_gameobject", {"name": "Clock"})
        reply = await surface.invoke(
            "create_and_attach_script",
            {"gameobject_name": "Clock", "script_name": "Timer", "content": "class Timer {}"},
        )
        assert reply.startswith("✅")
        assert "Timer" in scene.gameobjects["Clock"]
        assert await surface.invoke("read_script", {"script_name": "Timer"}) == "✅ class Timer {}"
        await surface.invoke("modify_script", {"script_name": "Timer", "content": "x"})
        assert scene.scripts["Timer"] == "x"
        assert (await surface.invoke("find_script", {"script_name": "Nope"})).startswith("❌")
