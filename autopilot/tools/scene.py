"""In-memory scene surface: entities, components and scripts held in dicts.

Stands in for a host editor when running the CLI offline and in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from autopilot.tools import operations as ops
from autopilot.tools.base import BaseTool, ToolResult


@dataclass
class SceneState:
    gameobjects: dict[str, list[str]] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)


def _schema(*required: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {name: {"type": "string"} for name in required},
        "required": list(required),
    }


class _SceneTool(BaseTool):
    tool_name = ""
    tool_description = ""
    tool_group = "scene"
    tool_params: tuple[str, ...] = ()

    def __init__(self, scene: SceneState) -> None:
        self.scene = scene

    @property
    def name(self) -> str:
        return self.tool_name

    @property
    def description(self) -> str:
        return self.tool_description

    @property
    def parameters(self) -> dict[str, Any]:
        return _schema(*self.tool_params)

    @property
    def group(self) -> str:
        return self.tool_group

    def _missing(self, kwargs: dict[str, str]) -> ToolResult | None:
        absent = [p for p in self.tool_params if not kwargs.get(p)]
        if absent:
            return ToolResult(success=False, error=f"Missing parameter: {', '.join(absent)}")
        return None


class CreateGameObjectTool(_SceneTool):
    tool_name = ops.CREATE_GAMEOBJECT
    tool_description = "Create a new GameObject"
    tool_params = ("name",)

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        name = kwargs["name"]
        if name in self.scene.gameobjects:
            return ToolResult(success=True, output=f"GameObject '{name}' already exists")
        self.scene.gameobjects[name] = ["Transform"]
        return ToolResult(success=True, output=f"Created GameObject '{name}'")


class FindGameObjectTool(_SceneTool):
    tool_name = ops.FIND_GAMEOBJECT
    tool_description = "Find a GameObject by exact name"
    tool_params = ("name",)

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        name = kwargs["name"]
        if name not in self.scene.gameobjects:
            return ToolResult(success=False, error=f"GameObject '{name}' not found")
        return ToolResult(success=True, output=f"Found GameObject '{name}'")


class AddComponentTool(_SceneTool):
    tool_name = ops.ADD_COMPONENT
    tool_description = "Add a component to a GameObject"
    tool_params = ("gameobject_name", "component_type")

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        target, component = kwargs["gameobject_name"], kwargs["component_type"]
        components = self.scene.gameobjects.get(target)
        if components is None:
            return ToolResult(success=False, error=f"GameObject '{target}' not found")
        if component not in components:
            components.append(component)
        return ToolResult(success=True, output=f"Added {component} to {target}")


class GetComponentsTool(_SceneTool):
    tool_name = ops.GET_COMPONENTS
    tool_description = "List the components on a GameObject"
    tool_params = ("gameobject_name",)

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        target = kwargs["gameobject_name"]
        components = self.scene.gameobjects.get(target)
        if components is None:
            return ToolResult(success=False, error=f"GameObject '{target}' not found")
        return ToolResult(success=True, output=f"Components on {target}: {', '.join(components)}")


class CreateAndAttachScriptTool(_SceneTool):
    tool_name = ops.CREATE_AND_ATTACH_SCRIPT
    tool_description = "Create a script and attach it to a GameObject"
    tool_group = "scripts"
    tool_params = ("gameobject_name", "script_name")

    @property
    def parameters(self) -> dict[str, Any]:
        schema = _schema(*self.tool_params)
        schema["properties"]["content"] = {"type": "string"}
        return schema

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        target, script = kwargs["gameobject_name"], kwargs["script_name"]
        components = self.scene.gameobjects.get(target)
        if components is None:
            return ToolResult(success=False, error=f"GameObject '{target}' not found")
        self.scene.scripts[script] = kwargs.get("content", "")
        if script not in components:
            components.append(script)
        return ToolResult(success=True, output=f"Created script {script} and attached it to {target}")


class FindScriptTool(_SceneTool):
    tool_name = ops.FIND_SCRIPT
    tool_description = "Check whether a script exists"
    tool_group = "scripts"
    tool_params = ("script_name",)

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        script = kwargs["script_name"]
        if script not in self.scene.scripts:
            return ToolResult(success=False, error=f"Script '{script}' not found")
        return ToolResult(success=True, output=f"Found script {script}")


class ReadScriptTool(_SceneTool):
    tool_name = ops.READ_SCRIPT
    tool_description = "Return the source of a script"
    tool_group = "scripts"
    tool_params = ("script_name",)

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        script = kwargs["script_name"]
        if script not in self.scene.scripts:
            return ToolResult(success=False, error=f"Script '{script}' not found")
        return ToolResult(success=True, output=self.scene.scripts[script])


class ModifyScriptTool(_SceneTool):
    tool_name = ops.MODIFY_SCRIPT
    tool_description = "Replace the source of a script"
    tool_group = "scripts"
    tool_params = ("script_name", "content")

    async def execute(self, **kwargs: str) -> ToolResult:
        if missing := self._missing(kwargs):
            return missing
        script = kwargs["script_name"]
        if script not in self.scene.scripts:
            return ToolResult(success=False, error=f"Script '{script}' not found")
        self.scene.scripts[script] = kwargs["content"]
        return ToolResult(success=True, output=f"Updated script {script}")


def scene_tools(scene: SceneState) -> list[BaseTool]:
    return [
        CreateGameObjectTool(scene),
        FindGameObjectTool(scene),
        AddComponentTool(scene),
        GetComponentsTool(scene),
        CreateAndAttachScriptTool(scene),
        FindScriptTool(scene),
        ReadScriptTool(scene),
        ModifyScriptTool(scene),
    ]
