"""Parsing of generator output into validated tree nodes.

Generators (LLM or static fixtures) are not strict about key names, so the
parser accepts the handful of spellings seen in practice and maps them onto a
single ``TreeNode`` shape before validation.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator

from skillmap.core.exceptions import ValidationError

_NAME_KEYS = ("competency", "skill", "name", "title")
_CORE_KEYS = ("core-competency", "core_competency", "is_core", "core")
_CHILD_KEYS = ("subcompetencies", "sub_competencies", "subskills", "sub_skills", "skills", "children")


class TreeNode(BaseModel):
    name: Optional[str] = None
    is_core: bool = False
    children: List["TreeNode"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _map_generator_keys(cls, data: Any) -> Any:
        if isinstance(data, TreeNode):
            return data
        if isinstance(data, str):
            return {"name": data}
        if not isinstance(data, dict):
            # Anything else is kept as a nameless node so the builder can
            # reject it (and its subtree) explicitly.
            return {"name": None}

        name = next((data[key] for key in _NAME_KEYS if data.get(key) is not None), None)
        if name is not None and not isinstance(name, str):
            name = None
        is_core = next((bool(data[key]) for key in _CORE_KEYS if key in data), False)

        children: list[Any] = []
        for key in _CHILD_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                children.extend(value)

        return {"name": name.strip() if name else None, "is_core": is_core, "children": children}


def parse_tree(payload: Any) -> TreeNode:
    """Turn raw generator output into a ``TreeNode``.

    A bare list is treated as the children of a nameless root.
    """
    if isinstance(payload, list):
        return TreeNode(children=[TreeNode.model_validate(item) for item in payload])
    if not isinstance(payload, dict):
        raise ValidationError(message="generator output must be a JSON object or array")
    return TreeNode.model_validate(payload)


def validate_node(node: TreeNode, *, allow_core_children: bool = False) -> None:
    """Raise ``ValidationError`` when ``node`` cannot be persisted on its own."""
    if not node.name:
        raise ValidationError(message="tree node is missing a name")
    if node.is_core and node.children and not allow_core_children:
        raise ValidationError(message=f"core competency '{node.name}' must not have children")
